from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from models import ProcessedRoster, RosterRows, SavedSession
from pipeline import process_roster
from routes.sessions import load_history
from settings import load_app_settings
from storage import RosterParseError, parse_roster_file
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _history_or_none() -> Optional[List[SavedSession]]:
    try:
        return load_history()
    except (OSError, ValueError) as e:
        logger.warning("Session history unavailable, conflict audit skipped: %s", e)
        return None


@router.post("/rosters/process", response_model=ProcessedRoster)
def post_roster_rows(payload: RosterRows):
    logger.info("POST /rosters/process - %d rows", len(payload.rows))
    result = process_roster(payload.rows, load_app_settings(), _history_or_none(), payload.session_id)
    logger.info("POST /rosters/process - %d records, %d conflicts",
                len(result.student_records), len(result.conflicts))
    return result


@router.post("/rosters/upload", response_model=ProcessedRoster)
def upload_roster(file: UploadFile = File(...), session_id: Optional[str] = Form(None)):
    logger.info("POST /rosters/upload - file: %s", file.filename)
    content = file.file.read()
    try:
        rows = parse_roster_file(content, file.filename or "")
    except RosterParseError as e:
        logger.error("POST /rosters/upload - failed to parse %s: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=str(e))
    if not rows:
        raise HTTPException(status_code=400, detail="Roster file is empty or contains no data rows")
    logger.info("POST /rosters/upload - parsed %d rows", len(rows))
    return process_roster(rows, load_app_settings(), _history_or_none(), session_id)
