from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from classifier import CandidateOutcome
from models import LookupHit, PeriodAggregate, TrainingUnit, UnitStatistics
from reports import (
    aggregate_period, candidate_note, class_summary_string, lookup_student, pass_rates,
    split_by_outcome, unit_statistics,
)
from routes.sessions import get_session_or_404, load_history
from settings import load_app_settings
from storage import load_training_units
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/students/lookup", response_model=List[LookupHit])
def get_student_lookup(q: str = Query("", description="Name, student ID, national ID or report number")):
    logger.info("GET /students/lookup - q: %r", q)
    hits = lookup_student(load_history(), q)
    logger.info("GET /students/lookup - %d hits", len(hits))
    return hits


@router.get("/reports/aggregate", response_model=PeriodAggregate)
def get_period_aggregate(start: Optional[date] = None, end: Optional[date] = None):
    logger.info("GET /reports/aggregate - start: %s, end: %s", start, end)
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    result = aggregate_period(load_history(), start, end)
    logger.info("GET /reports/aggregate - %d sessions in range", len(result.sessions))
    return result


@router.get("/sessions/{session_id}/students")
def get_session_students(session_id: str, outcome: Optional[CandidateOutcome] = None):
    """Candidate list of a session, optionally restricted to one outcome, with report notes."""
    logger.info("GET /sessions/%s/students - outcome: %s", session_id, outcome)
    session = get_session_or_404(session_id)
    if outcome is None:
        records = session.student_records
    else:
        records = split_by_outcome(session.student_records)[outcome]
    prefixes = load_app_settings().retake_prefixes
    return {
        "summary": class_summary_string(records),
        "students": [{**r, "note": candidate_note(r, prefixes)} for r in records],
    }


@router.get("/sessions/{session_id}/summary")
def get_session_summary(session_id: str):
    logger.info("GET /sessions/%s/summary", session_id)
    session = get_session_or_404(session_id)
    if session.grand_total is None:
        raise HTTPException(status_code=400, detail="Session has no computed totals")
    return {
        "summary": class_summary_string(session.student_records),
        "grand_total": session.grand_total,
        "pass_rates": pass_rates(session.grand_total),
    }


@router.get("/sessions/{session_id}/unit-statistics", response_model=List[UnitStatistics])
def get_unit_statistics(session_id: str):
    logger.info("GET /sessions/%s/unit-statistics", session_id)
    session = get_session_or_404(session_id)
    units = session.training_units or [TrainingUnit(**u) for u in load_training_units()]
    return unit_statistics(session.student_records, units)
