"""Derived report views over candidate records and saved sessions."""
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence

from aggregation import DEFAULT_RETAKE_PREFIXES, is_retake, student_id_of
from classifier import CandidateOutcome, classify_candidate, classify_subject_cell
from models import (
    FULL_NAME, LICENSE_CLASS, NATIONAL_ID, REPORT_NUMBER, SUBJECT_SET,
    CandidateRecord, LicenseClassData, LookupHit, PeriodAggregate, PeriodTotals,
    SavedSession, TrainingUnit, UnitStatistics, parse_report_date,
)
from subjects import SUBJECT_ORDER, fold_subject_text

UNKNOWN_UNIT = "Thí sinh tự do / Khác"
_NBSP = "\u00a0"


def class_summary_string(records: Sequence[CandidateRecord]) -> str:
    """``"Tổng số: 12    Hạng B: 7; Hạng C1: 5"``, the gap being four non-breaking spaces."""
    if not records:
        return "Tổng số: 0"
    counts: Dict[str, int] = {}
    for record in records:
        class_code = str(record.get(LICENSE_CLASS) or "Khác").strip()
        counts[class_code] = counts.get(class_code, 0) + 1
    parts = [f"Hạng {code}: {counts[code]}" for code in sorted(counts)]
    return f"Tổng số: {len(records)}{_NBSP * 4}{'; '.join(parts)}"


def candidate_note(record: CandidateRecord, retake_prefixes: Sequence[str] = DEFAULT_RETAKE_PREFIXES) -> str:
    if is_retake(student_id_of(record), retake_prefixes):
        return f"Thi lại nội dung: {fold_subject_text(record.get(SUBJECT_SET))}"
    return "Thi lần đầu"


def identify_training_unit(student_id, units: Iterable[TrainingUnit]) -> str:
    """Name of the unit whose code is the longest prefix of *student_id*."""
    sid = "" if student_id is None else str(student_id).strip()
    if not sid:
        return ""
    for unit in sorted(units, key=lambda u: len(u.code), reverse=True):
        if unit.code and sid.startswith(unit.code):
            return unit.name
    return ""


def split_by_outcome(records: Iterable[CandidateRecord]) -> Dict[CandidateOutcome, List[CandidateRecord]]:
    buckets: Dict[CandidateOutcome, List[CandidateRecord]] = {o: [] for o in CandidateOutcome}
    for record in records:
        buckets[classify_candidate(record)].append(record)
    return buckets


def pass_rates(grand_total: LicenseClassData) -> Dict[str, float]:
    """Percentages shown in the meeting minutes; 0 when the denominator is 0."""
    def pct(part: int, whole: int) -> float:
        return round(part / whole * 100, 2) if whole else 0.0

    rates = {"overall": pct(grand_total.final_pass, grand_total.total_participants)}
    for subject in SUBJECT_ORDER:
        result = grand_total.result_for(subject)
        rates[subject.attr] = pct(result.passed, result.total)
    return rates


def unit_statistics(records: Iterable[CandidateRecord], units: Sequence[TrainingUnit]) -> List[UnitStatistics]:
    stats: Dict[str, UnitStatistics] = {}
    for record in records:
        name = identify_training_unit(student_id_of(record), units) or UNKNOWN_UNIT
        entry = stats.setdefault(name, UnitStatistics(name=name))
        entry.total += 1
        outcome = classify_candidate(record)
        if outcome is CandidateOutcome.ABSENT:
            entry.absent += 1
        elif outcome is CandidateOutcome.PASSED:
            entry.passed += 1
        else:
            entry.failed += 1
        for subject in SUBJECT_ORDER:
            if classify_subject_cell(record.get(subject.column)).passed:
                attr = f"{subject.attr}_pass"
                setattr(entry, attr, getattr(entry, attr) + 1)
    return [stats[name] for name in sorted(stats)]


def lookup_student(sessions: Iterable[SavedSession], term: str) -> List[LookupHit]:
    """Find a candidate across sessions.

    Name, student ID and national ID match on a case-insensitive substring;
    the report number must match exactly.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return []
    hits = []
    for session in sessions:
        for record in session.student_records:
            name = str(record.get(FULL_NAME) or "").lower()
            sid = student_id_of(record).lower()
            national_id = str(record.get(NATIONAL_ID) or "").lower()
            report_number = str(record.get(REPORT_NUMBER) or "").strip().lower()
            if needle in name or needle in sid or needle in national_id or needle == report_number:
                hits.append(LookupHit(
                    session_id=session.id,
                    session_name=session.name,
                    report_date=session.report_date,
                    outcome=classify_candidate(record).value,
                    record=record,
                ))
    hits.sort(key=lambda h: parse_report_date(h.report_date))
    return hits


def aggregate_period(
    sessions: Iterable[SavedSession],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> PeriodAggregate:
    """Sum grand totals of the sessions reported between *start* and *end* (inclusive)."""
    lower = datetime.combine(start, time.min) if start else datetime.min
    upper = datetime.combine(end, time.max) if end else datetime.max

    selected = [
        s for s in sessions
        if s.grand_total is not None and lower <= parse_report_date(s.report_date) <= upper
    ]
    selected.sort(key=lambda s: parse_report_date(s.report_date))

    totals = PeriodTotals()
    rows = []
    for session in selected:
        gt = session.grand_total
        for subject in SUBJECT_ORDER:
            setattr(totals, subject.attr, getattr(totals, subject.attr) + gt.result_for(subject).total)
        totals.applications += gt.total_applications
        totals.passed += gt.final_pass
        rows.append({
            "id": session.id,
            "name": session.name,
            "report_date": session.report_date,
            "total_applications": gt.total_applications,
            "final_pass": gt.final_pass,
        })
    return PeriodAggregate(sessions=rows, totals=totals)
