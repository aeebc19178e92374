"""Roster processing: normalize -> aggregate -> fees -> historical audit."""
import logging
from typing import Any, Dict, Iterable, List, Optional

from aggregation import compute_grand_total, process_records
from conflicts import check_historical_conflicts
from fees import calculate_fees
from models import ProcessedRoster, SavedSession
from normalizer import normalize_records
from reports import class_summary_string
from settings import AppSettings

logger = logging.getLogger(__name__)


def process_roster(
    rows: Iterable[Dict[str, Any]],
    settings: AppSettings,
    history: Optional[List[SavedSession]],
    session_id: Optional[str] = None,
) -> ProcessedRoster:
    """Run the full pipeline over raw spreadsheet *rows*.

    *history* is ``None`` when stored sessions could not be read; the result
    then carries ``audit_available=False`` instead of an empty finding list
    that would look like a clean audit.
    """
    records = normalize_records(rows, settings.aliases)
    app_data = process_records(records, settings.retake_prefixes)
    grand_total = compute_grand_total(app_data)
    fees = calculate_fees(grand_total, records, settings.fee_rates)

    if history is None:
        conflicts, audit_available = [], False
    else:
        conflicts = check_historical_conflicts(records, history, current_session_id=session_id)
        audit_available = True

    logger.info(
        "Processed roster: %d records, %d classes, %d final passes, %d conflicts",
        len(records),
        len(app_data.first_time.rows) + len(app_data.retake.rows),
        grand_total.final_pass,
        len(conflicts),
    )
    return ProcessedRoster(
        student_records=records,
        app_data=app_data,
        grand_total=grand_total,
        fees=fees,
        conflicts=conflicts,
        audit_available=audit_available,
        summary=class_summary_string(records),
    )


def refresh_aggregates(session: SavedSession, settings: AppSettings) -> SavedSession:
    """Return a copy of *session* whose tables and grand total match its records.

    Sessions entered by hand carry no records; their tables are kept as given.
    """
    if not session.student_records:
        return session
    app_data = process_records(session.student_records, settings.retake_prefixes)
    return session.model_copy(update={
        "app_data": app_data,
        "grand_total": compute_grand_total(app_data),
    })
