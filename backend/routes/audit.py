from typing import List

from fastapi import APIRouter, HTTPException
from conflicts import audit_session_history, check_historical_conflicts, group_findings
from models import ConflictFinding, RosterRows
from normalizer import normalize_records
from routes.sessions import load_history
from settings import load_app_settings
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _history_or_503():
    try:
        return load_history()
    except (OSError, ValueError) as e:
        logger.error("Audit - could not read session history: %s", e)
        raise HTTPException(status_code=503, detail="Session history unavailable")


@router.get("/audit")
def get_audit():
    """Audit every stored session against the sessions reported before it."""
    logger.info("GET /audit - auditing stored history")
    sessions = _history_or_503()
    findings = audit_session_history(sessions)
    grouped = group_findings(findings)
    # newest findings first
    grouped.reverse()
    logger.info("GET /audit - %d sessions, %d findings, %d students",
                len(sessions), len(findings), len(grouped))
    return {
        "sessions_checked": len(sessions),
        "findings": [f.model_dump() for f in findings],
        "grouped": [g.model_dump() for g in grouped],
    }


@router.post("/audit/check", response_model=List[ConflictFinding])
def post_audit_check(payload: RosterRows):
    logger.info("POST /audit/check - %d rows", len(payload.rows))
    records = normalize_records(payload.rows, load_app_settings().aliases)
    findings = check_historical_conflicts(records, _history_or_503(), current_session_id=payload.session_id)
    logger.info("POST /audit/check - %d findings", len(findings))
    return findings
