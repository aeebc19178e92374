"""Test and licensing fee totals for a session."""
from typing import Iterable, Optional

from classifier import classify_subject_cell
from models import (
    SUBJECT_SET, CandidateRecord, FeeBreakdown, FeeLine, FeeRates, FeeSummary,
    LicenseClassData,
)
from number_words import to_vietnamese_words
from subjects import SUBJECT_ORDER, parse_subject_set


def _breakdown(counts, rates: FeeRates) -> FeeBreakdown:
    breakdown = FeeBreakdown()
    for subject in SUBJECT_ORDER:
        line = FeeLine(count=counts[subject], total=counts[subject] * rates.rate_for(subject))
        setattr(breakdown, subject.attr, line)
        breakdown.total += line.total
    return breakdown


def calculate_fees(
    grand_total: LicenseClassData,
    records: Iterable[CandidateRecord],
    rates: Optional[FeeRates] = None,
) -> FeeSummary:
    """Compute fees by registered subjects and by actual attendance.

    Registered counts come from each record's subject set, attendance counts
    from the score cells.  The licensing fee is charged per final pass and
    added to both totals.
    """
    rates = rates or FeeRates()
    registered = {s: 0 for s in SUBJECT_ORDER}
    attended = {s: 0 for s in SUBJECT_ORDER}

    for record in records:
        declared = parse_subject_set(record.get(SUBJECT_SET))
        for subject in SUBJECT_ORDER:
            if subject in declared:
                registered[subject] += 1
            if classify_subject_cell(record.get(subject.column)).attempted:
                attended[subject] += 1

    by_registered = _breakdown(registered, rates)
    by_attendance = _breakdown(attended, rates)
    licensing = FeeLine(
        count=grand_total.final_pass,
        total=grand_total.final_pass * rates.licensing,
    )
    registered_total = by_registered.total + licensing.total
    attendance_total = by_attendance.total + licensing.total

    return FeeSummary(
        by_registered=by_registered,
        by_attendance=by_attendance,
        licensing=licensing,
        by_registered_total=registered_total,
        by_attendance_total=attendance_total,
        by_registered_total_words=to_vietnamese_words(registered_total),
        by_attendance_total_words=to_vietnamese_words(attendance_total),
    )
