"""Pass / fail / absent classification of roster score cells and candidates."""
import unicodedata
from enum import Enum
from typing import NamedTuple

from models import SUBJECT_SET, CandidateRecord
from subjects import SUBJECT_ORDER, parse_subject_set

ABSENCE_MARKERS = frozenset({"", "VẮNG", "V"})
PASS_MARKERS = frozenset({"ĐẠT", "PASSED", "P", "1"})


class SubjectStatus(NamedTuple):
    attempted: bool
    passed: bool


class CandidateOutcome(str, Enum):
    ABSENT = "absent"
    PASSED = "passed"
    FAILED = "failed"


def cell_text(raw) -> str:
    """Render a score cell as trimmed, NFC-normalized uppercase text.

    Spreadsheet readers hand back integers and floats for numeric cells; a
    whole float such as ``1.0`` is rendered ``"1"`` so it matches the pass
    vocabulary the same way the typed text would.
    """
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "1" if raw else ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return unicodedata.normalize("NFC", str(raw)).strip().upper()


def classify_subject_cell(raw) -> SubjectStatus:
    text = cell_text(raw)
    if text in ABSENCE_MARKERS:
        return SubjectStatus(attempted=False, passed=False)
    # Anything outside the pass vocabulary ("KHÔNG ĐẠT", "TRƯỢT", raw scores)
    # counts as attempted and failed.
    return SubjectStatus(attempted=True, passed=text in PASS_MARKERS)


def is_absent(record: CandidateRecord) -> bool:
    return not any(
        classify_subject_cell(record.get(s.column)).attempted for s in SUBJECT_ORDER
    )


def classify_candidate(record: CandidateRecord) -> CandidateOutcome:
    """Decide whether *record* is absent, passed or failed.

    Only the subjects declared in the subject-set column must be passed;
    an empty subject set can never pass.
    """
    if is_absent(record):
        return CandidateOutcome.ABSENT
    declared = parse_subject_set(record.get(SUBJECT_SET))
    if not declared:
        return CandidateOutcome.FAILED
    for subject in declared:
        if not classify_subject_cell(record.get(subject.column)).passed:
            return CandidateOutcome.FAILED
    return CandidateOutcome.PASSED


def is_passed(record: CandidateRecord) -> bool:
    return classify_candidate(record) is CandidateOutcome.PASSED
