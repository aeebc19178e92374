"""Cross-check a roster against previously saved sessions.

Two anomalies are reported per registered subject:

* the candidate registers again for a subject they already passed in an
  earlier session (``retake_passed``);
* the candidate registers for a subject that was not part of the subject
  set recorded at their first appearance (``outside_framework``).

History is always read in report-date order.  A candidate's first recorded
subject set is their baseline; a pass, once recorded, is never revoked by a
later failure, and the most recent passing session is the one cited.
"""
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from aggregation import student_id_of
from classifier import classify_subject_cell
from models import (
    FULL_NAME, OUTSIDE_FRAMEWORK, RETAKE_PASSED, SUBJECT_SET, CandidateRecord,
    ConflictDetail, ConflictFinding, GroupedFinding, SavedSession,
    format_report_date, parse_report_date,
)
from subjects import SUBJECT_ORDER, Subject, SubjectSet, format_subject_set, parse_subject_set

logger = logging.getLogger(__name__)


class Citation(NamedTuple):
    session_id: str
    session_name: str
    date: str


def _cite(session: SavedSession) -> Citation:
    return Citation(session.id, session.name, format_report_date(session.report_date))


def sort_sessions(sessions: Iterable[SavedSession]) -> List[SavedSession]:
    """Oldest report date first; sessions on the same date in creation order."""
    return sorted(sessions, key=lambda s: (parse_report_date(s.report_date), s.created_at))


def build_baselines(sessions: Sequence[SavedSession]) -> Dict[str, Tuple[SubjectSet, Citation]]:
    """Map each student ID to the subject set of its earliest appearance.

    *sessions* must already be in chronological order.  A record with an
    empty subject set does not establish a baseline.
    """
    baselines: Dict[str, Tuple[SubjectSet, Citation]] = {}
    for session in sessions:
        for record in session.student_records:
            sid = student_id_of(record)
            if not sid or sid in baselines:
                continue
            subjects = parse_subject_set(record.get(SUBJECT_SET))
            if subjects:
                baselines[sid] = (subjects, _cite(session))
    return baselines


def build_passed_subjects(sessions: Sequence[SavedSession]) -> Dict[str, Dict[Subject, Citation]]:
    """Map each student ID to the subjects it has passed and where."""
    passed: Dict[str, Dict[Subject, Citation]] = {}
    for session in sessions:
        citation = _cite(session)
        for record in session.student_records:
            sid = student_id_of(record)
            if not sid:
                continue
            for subject in SUBJECT_ORDER:
                if classify_subject_cell(record.get(subject.column)).passed:
                    passed.setdefault(sid, {})[subject] = citation
    return passed


def _retake_message(subject: Subject, citation: Citation) -> str:
    return (
        f"Đăng ký thi lại nội dung {subject.code} ({subject.label}) "
        f"đã đạt tại {citation.session_name} ngày {citation.date}"
    )


def _framework_message(subject: Subject, baseline: SubjectSet, citation: Citation) -> str:
    return (
        f"Nội dung {subject.code} ({subject.label}) không thuộc khung đăng ký ban đầu "
        f"{format_subject_set(baseline)} tại {citation.session_name} ngày {citation.date}"
    )


def check_historical_conflicts(
    records: Iterable[CandidateRecord],
    history: Iterable[SavedSession],
    current_session_id: Optional[str] = None,
) -> List[ConflictFinding]:
    """Audit *records* against *history*; findings follow input order.

    The session whose id equals *current_session_id* is left out of the
    history so that re-checking a saved session does not flag itself.
    """
    sessions = sort_sessions(
        s for s in history if current_session_id is None or s.id != current_session_id
    )
    baselines = build_baselines(sessions)
    passed = build_passed_subjects(sessions)

    findings: List[ConflictFinding] = []
    for record in records:
        sid = student_id_of(record)
        if not sid:
            continue
        declared = parse_subject_set(record.get(SUBJECT_SET))
        if not declared:
            continue
        name = str(record.get(FULL_NAME) or "").strip()
        passed_here = passed.get(sid, {})
        baseline = baselines.get(sid)

        for subject in SUBJECT_ORDER:
            if subject not in declared:
                continue
            if subject in passed_here:
                citation = passed_here[subject]
                kind, message = RETAKE_PASSED, _retake_message(subject, citation)
            elif baseline is not None and subject not in baseline[0]:
                citation = baseline[1]
                kind, message = OUTSIDE_FRAMEWORK, _framework_message(subject, baseline[0], citation)
            else:
                continue
            findings.append(ConflictFinding(
                student_id=sid,
                student_name=name,
                subject=subject.code,
                kind=kind,
                message=message,
                previous_session_id=citation.session_id,
                previous_session_name=citation.session_name,
                previous_date=citation.date,
                target_session_id=current_session_id,
            ))

    logger.debug("Audited roster against %d sessions: %d findings", len(sessions), len(findings))
    return findings


def audit_session_history(sessions: Iterable[SavedSession]) -> List[ConflictFinding]:
    """Audit every stored session against all sessions reported before it."""
    ordered = sort_sessions(sessions)
    findings: List[ConflictFinding] = []
    for index, session in enumerate(ordered):
        findings.extend(check_historical_conflicts(
            session.student_records, ordered[:index], current_session_id=session.id,
        ))
    return findings


def group_findings(findings: Iterable[ConflictFinding]) -> List[GroupedFinding]:
    """Collect findings per student, dropping repeats of (subject, source session)."""
    grouped: Dict[str, GroupedFinding] = {}
    for finding in findings:
        entry = grouped.get(finding.student_id)
        if entry is None:
            entry = GroupedFinding(student_id=finding.student_id, student_name=finding.student_name)
            grouped[finding.student_id] = entry
        if any(c.subject == finding.subject and c.source_session_id == finding.previous_session_id
               for c in entry.conflicts):
            continue
        entry.conflicts.append(ConflictDetail(
            subject=finding.subject,
            kind=finding.kind,
            message=finding.message,
            previous_session_name=finding.previous_session_name,
            previous_date=finding.previous_date,
            source_session_id=finding.previous_session_id,
            target_session_id=finding.target_session_id,
        ))
    return list(grouped.values())
