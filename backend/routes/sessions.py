from datetime import datetime
from typing import List

from fastapi import APIRouter, HTTPException
from models import (
    FULL_NAME, NATIONAL_ID, NOTE, SUBJECT_SET, FeeSummary, ResultFix, SavedSession,
    StudentCorrection,
)
from aggregation import student_id_of
from fees import calculate_fees
from pipeline import refresh_aggregates
from settings import load_app_settings
from storage import delete_session, load_all_sessions, load_session, save_session
from subjects import Subject
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def load_history() -> List[SavedSession]:
    return [SavedSession(**data) for data in load_all_sessions()]


def get_session_or_404(session_id: str) -> SavedSession:
    data = load_session(session_id)
    if data is None:
        logger.warning("Session %s not found", session_id)
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return SavedSession(**data)


def _has_student(session: SavedSession, student_id: str) -> bool:
    return any(student_id_of(r) == student_id for r in session.student_records)


@router.get("/sessions", response_model=List[SavedSession])
def get_sessions():
    logger.info("GET /sessions - loading all sessions")
    sessions = load_history()
    logger.info("GET /sessions - returned %d sessions", len(sessions))
    return sessions


@router.get("/sessions/{session_id}", response_model=SavedSession)
def get_session(session_id: str):
    logger.info("GET /sessions/%s", session_id)
    return get_session_or_404(session_id)


@router.post("/sessions")
def post_session(session: SavedSession):
    logger.info("POST /sessions - id: %s, name: %s, records: %d",
                session.id, session.name, len(session.student_records))
    session = refresh_aggregates(session, load_app_settings())
    try:
        save_session(session.model_dump())
    except ValueError as e:
        logger.warning("POST /sessions - rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("POST /sessions - saved session %s", session.id)
    return {"status": "ok", "id": session.id}


@router.delete("/sessions/{session_id}")
def remove_session(session_id: str):
    logger.info("DELETE /sessions/%s", session_id)
    deleted = delete_session(session_id)
    logger.info("DELETE /sessions/%s - deleted: %s", session_id, deleted)
    return {"status": "ok", "deleted": deleted}


@router.patch("/sessions/{session_id}/students/{student_id}", response_model=SavedSession)
def correct_student(session_id: str, student_id: str, correction: StudentCorrection):
    """Fix a candidate's name or national ID; aggregates are left as they are."""
    logger.info("PATCH /sessions/%s/students/%s", session_id, student_id)
    session = get_session_or_404(session_id)
    if not _has_student(session, student_id):
        raise HTTPException(status_code=404, detail=f"Student {student_id} not in session {session_id}")

    changes = {}
    if correction.name is not None:
        changes[FULL_NAME] = correction.name
    if correction.national_id is not None:
        changes[NATIONAL_ID] = correction.national_id

    records = [
        {**r, **changes} if student_id_of(r) == student_id else r
        for r in session.student_records
    ]
    session = session.model_copy(update={"student_records": records})
    save_session(session.model_dump())
    logger.info("PATCH /sessions/%s/students/%s - updated fields: %s",
                session_id, student_id, ", ".join(changes) or "none")
    return session


@router.put("/sessions/{session_id}/students/{student_id}/results", response_model=SavedSession)
def fix_student_results(session_id: str, student_id: str, fix: ResultFix):
    """Replace a candidate's subject set and scores, then recompute the session tables."""
    logger.info("PUT /sessions/%s/students/%s/results - content: %s", session_id, student_id, fix.content)
    session = get_session_or_404(session_id)
    if not _has_student(session, student_id):
        raise HTTPException(status_code=404, detail=f"Student {student_id} not in session {session_id}")

    stamp = f"Đã cập nhật lại nội dung thi ngày {datetime.now().strftime('%d/%m/%Y')}"
    updated_cells = {
        SUBJECT_SET: fix.content,
        Subject.THEORY.column: fix.theory,
        Subject.SIMULATION.column: fix.simulation,
        Subject.PRACTICAL_COURSE.column: fix.practical_course,
        Subject.ON_ROAD.column: fix.on_road,
    }

    records = []
    for record in session.student_records:
        if student_id_of(record) == student_id:
            previous_note = record.get(NOTE)
            note = f"{previous_note} - {stamp}" if previous_note else stamp
            record = {**record, **updated_cells, NOTE: note}
        records.append(record)

    session = refresh_aggregates(
        session.model_copy(update={"student_records": records}), load_app_settings()
    )
    save_session(session.model_dump())
    logger.info("PUT /sessions/%s/students/%s/results - session recomputed, final pass: %d",
                session_id, student_id, session.grand_total.final_pass)
    return session


@router.get("/sessions/{session_id}/fees", response_model=FeeSummary)
def get_session_fees(session_id: str):
    logger.info("GET /sessions/%s/fees", session_id)
    session = get_session_or_404(session_id)
    if session.grand_total is None:
        raise HTTPException(status_code=400, detail="Session has no computed totals")
    return calculate_fees(session.grand_total, session.student_records, load_app_settings().fee_rates)
