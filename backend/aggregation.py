"""Fold candidate records into per-license-class result tables."""
import logging
from typing import Dict, Iterable, List, Sequence

from classifier import CandidateOutcome, classify_candidate, classify_subject_cell
from models import (
    FIRST_TIME_TITLE, GRAND_TOTAL_LABEL, LICENSE_CLASS, RETAKE_TITLE, STUDENT_ID,
    AppData, CandidateRecord, LicenseClassData, TableData,
)
from subjects import SUBJECT_ORDER

logger = logging.getLogger(__name__)

DEFAULT_RETAKE_PREFIXES = ("2721", "2722", "2411")


def student_id_of(record: CandidateRecord) -> str:
    value = record.get(STUDENT_ID)
    return "" if value is None else str(value).strip()


def is_retake(student_id, prefixes: Sequence[str] = DEFAULT_RETAKE_PREFIXES) -> bool:
    """Retake / free candidates are recognised purely by their ID prefix."""
    sid = "" if student_id is None else str(student_id).strip()
    return any(p and sid.startswith(p) for p in prefixes)


def _accumulate(row: LicenseClassData, record: CandidateRecord) -> None:
    row.total_applications += 1
    outcome = classify_candidate(record)
    if outcome is not CandidateOutcome.ABSENT:
        row.total_participants += 1
    for subject in SUBJECT_ORDER:
        status = classify_subject_cell(record.get(subject.column))
        if status.attempted:
            result = row.result_for(subject)
            result.total += 1
            if status.passed:
                result.passed += 1
    if outcome is CandidateOutcome.PASSED:
        row.final_pass += 1


def _finalize(groups: Dict[str, LicenseClassData]) -> List[LicenseClassData]:
    rows = []
    for class_code in sorted(groups):
        row = groups[class_code]
        for subject in SUBJECT_ORDER:
            result = row.result_for(subject)
            result.failed = result.total - result.passed
        rows.append(row)
    return rows


def process_records(
    records: Iterable[CandidateRecord],
    retake_prefixes: Sequence[str] = DEFAULT_RETAKE_PREFIXES,
) -> AppData:
    """Build the first-time and retake tables from normalized *records*.

    Records without a license class are skipped.  Input records are only
    read, so calling this twice on the same list gives identical output.
    """
    first_time: Dict[str, LicenseClassData] = {}
    retake: Dict[str, LicenseClassData] = {}
    skipped = 0

    for record in records:
        raw_class = record.get(LICENSE_CLASS)
        class_code = "" if raw_class is None else str(raw_class).strip()
        if not class_code:
            skipped += 1
            continue
        target = retake if is_retake(student_id_of(record), retake_prefixes) else first_time
        if class_code not in target:
            target[class_code] = LicenseClassData(license_class=class_code)
        _accumulate(target[class_code], record)

    if skipped:
        logger.debug("Skipped %d records without a license class", skipped)

    return AppData(
        first_time=TableData(title=FIRST_TIME_TITLE, rows=_finalize(first_time)),
        retake=TableData(title=RETAKE_TITLE, rows=_finalize(retake)),
    )


def compute_grand_total(app_data: AppData) -> LicenseClassData:
    """Element-wise sum of every row in both cohort tables."""
    total = LicenseClassData(license_class=GRAND_TOTAL_LABEL)
    for row in app_data.first_time.rows + app_data.retake.rows:
        total.total_applications += row.total_applications
        total.total_participants += row.total_participants
        total.final_pass += row.final_pass
        for subject in SUBJECT_ORDER:
            src = row.result_for(subject)
            dst = total.result_for(subject)
            dst.total += src.total
            dst.passed += src.passed
            dst.failed += src.failed
    return total
