import csv
import io
import json
import os
import re
import zipfile
from typing import Any, Dict, List, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

DATA_DIR = os.environ.get("ROSTER_DATA_DIR", "./data")

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")


class RosterParseError(ValueError):
    """Raised when an uploaded roster file cannot be read."""


def _ensure_data_dir():
    os.makedirs(DATA_DIR, exist_ok=True)


def _sessions_dir() -> str:
    return os.path.join(DATA_DIR, "sessions")


def _session_path(session_id: str) -> Optional[str]:
    if not _SAFE_ID.match(session_id or ""):
        return None
    return os.path.join(_sessions_dir(), f"{session_id}.json")


def _read_json(path: str, default):
    if not os.path.exists(path):
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, data) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


# ── Sessions ──────────────────────────────────────────────────────────────────

def save_session(session: dict) -> None:
    """Write *session* under its id, replacing any previous copy."""
    path = _session_path(session.get("id", ""))
    if path is None:
        raise ValueError(f"Invalid session id: {session.get('id')!r}")
    _ensure_data_dir()
    _write_json(path, session)


def load_session(session_id: str) -> Optional[dict]:
    path = _session_path(session_id)
    if path is None:
        return None
    return _read_json(path, None)


def load_all_sessions() -> List[dict]:
    """Every stored session, most recently created first."""
    directory = _sessions_dir()
    if not os.path.isdir(directory):
        return []
    sessions = []
    for name in os.listdir(directory):
        if name.endswith(".json"):
            sessions.append(_read_json(os.path.join(directory, name), None))
    sessions = [s for s in sessions if s]
    sessions.sort(key=lambda s: s.get("created_at") or 0, reverse=True)
    return sessions


def delete_session(session_id: str) -> bool:
    path = _session_path(session_id)
    if path is None or not os.path.exists(path):
        return False
    os.remove(path)
    return True


# ── Training units ────────────────────────────────────────────────────────────

def load_training_units() -> List[dict]:
    units = _read_json(os.path.join(DATA_DIR, "training_units.json"), [])
    return sorted(units, key=lambda u: u.get("created_at") or 0)


def save_training_units(units: List[dict]) -> None:
    _ensure_data_dir()
    _write_json(os.path.join(DATA_DIR, "training_units.json"), units)


# ── Settings ──────────────────────────────────────────────────────────────────

def load_settings() -> Optional[dict]:
    return _read_json(os.path.join(DATA_DIR, "settings.json"), None)


def save_settings(settings: dict) -> None:
    _ensure_data_dir()
    _write_json(os.path.join(DATA_DIR, "settings.json"), settings)


# ── Roster files ──────────────────────────────────────────────────────────────

def _rows_from_xlsx(content: bytes) -> List[Dict[str, Any]]:
    wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = None
        for values in rows:
            if any(v is not None and str(v).strip() for v in values):
                header = [None if v is None else str(v) for v in values]
                break
        if header is None:
            return []
        records = []
        for values in rows:
            row = {
                key: value
                for key, value in zip(header, values)
                if key is not None and value is not None and str(value).strip() != ""
            }
            if row:
                records.append(row)
        return records
    finally:
        wb.close()


def _rows_from_csv(content: bytes) -> List[Dict[str, Any]]:
    text = content.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    records = []
    for row in reader:
        cleaned = {k: v for k, v in row.items() if k is not None and v not in (None, "")}
        if cleaned:
            records.append(cleaned)
    return records


def parse_roster_file(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """Read the first sheet of an .xlsx / .xlsm file, or a .csv file, into row dicts.

    Empty cells are omitted from the row dicts, and fully empty rows are skipped.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    try:
        if ext in (".xlsx", ".xlsm"):
            return _rows_from_xlsx(content)
        if ext == ".csv":
            return _rows_from_csv(content)
    # malformed sheet XML surfaces as SyntaxError (ElementTree ParseError, lxml XMLSyntaxError)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, SyntaxError, csv.Error) as e:
        raise RosterParseError(f"Could not read roster file {filename!r}: {e}") from e
    raise RosterParseError(f"Unsupported roster file type: {ext or filename!r}")
