"""Map loosely-named spreadsheet columns onto canonical candidate records.

Header cells are matched after NFC normalization, trimming, uppercasing and
collapsing runs of whitespace, so ``" so  bao danh"`` and ``"SO BAO DANH"`` hit
the same alias.
Columns that match no alias are kept under their cleaned header; nothing is
dropped.
"""
import logging
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models import (
    BIRTH_DATE, FULL_NAME, LICENSE_CLASS, NATIONAL_ID, REPORT_NUMBER,
    RESIDENCE, STUDENT_ID, SUBJECT_SET, CandidateRecord,
)
from subjects import SUBJECT_ORDER, Subject, format_subject_set

logger = logging.getLogger(__name__)

_THEORY = Subject.THEORY.column
_SIMULATION = Subject.SIMULATION.column
_PRACTICAL = Subject.PRACTICAL_COURSE.column
_ON_ROAD = Subject.ON_ROAD.column

DEFAULT_ALIASES: Dict[str, str] = {
    "SỐ BÁO DANH": REPORT_NUMBER, "SBD": REPORT_NUMBER, "SO BAO DANH": REPORT_NUMBER,
    "SỐ BD": REPORT_NUMBER,
    "MÃ HỌC VIÊN": STUDENT_ID, "MÃ HV": STUDENT_ID, "MAHV": STUDENT_ID, "MA HV": STUDENT_ID,
    "MADK": STUDENT_ID, "MÃ ĐK": STUDENT_ID, "MÃ SỐ": STUDENT_ID, "MA SO": STUDENT_ID,
    "HỌ VÀ TÊN": FULL_NAME, "HO VA TEN": FULL_NAME, "HỌ TÊN": FULL_NAME, "TÊN": FULL_NAME,
    "TEN HOC VIEN": FULL_NAME,
    "HẠNG GPLX": LICENSE_CLASS, "HANG GPLX": LICENSE_CLASS, "HẠNG": LICENSE_CLASS,
    "HANG": LICENSE_CLASS, "HANG XE": LICENSE_CLASS, "HẠNG ĐĂNG KÝ": LICENSE_CLASS,
    "NỘI DUNG THI": SUBJECT_SET, "ND THI": SUBJECT_SET, "NDSH": SUBJECT_SET,
    "NỘI DUNG": SUBJECT_SET, "NOI DUNG THI": SUBJECT_SET,
    "LÝ THUYẾT": _THEORY, "LT": _THEORY, "LY THUYET": _THEORY, "ĐIỂM LT": _THEORY,
    "KQ LT": _THEORY,
    "MÔ PHỎNG": _SIMULATION, "MP": _SIMULATION, "MO PHONG": _SIMULATION,
    "ĐIỂM MP": _SIMULATION, "KQ MP": _SIMULATION,
    "SA HÌNH": _PRACTICAL, "SH": _PRACTICAL, "SA HINH": _PRACTICAL,
    "TH TRONG HÌNH": _PRACTICAL, "KQ SH": _PRACTICAL,
    "ĐƯỜNG TRƯỜNG": _ON_ROAD, "ĐT": _ON_ROAD, "DT": _ON_ROAD, "DUONG TRUONG": _ON_ROAD,
    "KQ ĐT": _ON_ROAD, "TH ĐƯỜNG TRƯỜNG": _ON_ROAD,
    "SỐ CHỨNG MINH": NATIONAL_ID, "CCCD": NATIONAL_ID, "CMND": NATIONAL_ID,
    "SỐ THẺ": NATIONAL_ID,
    "NGÀY SINH": BIRTH_DATE, "NGAY SINH": BIRTH_DATE, "NS": BIRTH_DATE,
    "NƠI CƯ TRÚ": RESIDENCE, "DIA CHI": RESIDENCE, "HỘ KHẨU": RESIDENCE,
    "TRÚ QUÁN": RESIDENCE,
}

_WS = re.compile(r"\s+")


def clean_header(key: Any) -> str:
    return _WS.sub(" ", unicodedata.normalize("NFC", str(key)).strip().upper())


def build_key_map(aliases: Mapping[str, str]) -> Dict[str, str]:
    """Index *aliases* by cleaned header so lookups ignore case and spacing."""
    return {clean_header(alias): canonical for alias, canonical in aliases.items()}


def _is_filled(value) -> bool:
    return value is not None and str(value).strip() != ""


def derive_subject_set(record: CandidateRecord) -> str:
    """Build a subject-set string from the score cells that carry a value."""
    return format_subject_set(s for s in SUBJECT_ORDER if _is_filled(record.get(s.column)))


def normalize_record(row: Mapping[str, Any], key_map: Mapping[str, str]) -> CandidateRecord:
    """Return a new record with canonical keys; *key_map* comes from :func:`build_key_map`."""
    normalized: CandidateRecord = {}
    for key, value in row.items():
        cleaned = clean_header(key)
        normalized[key_map.get(cleaned, cleaned)] = value

    if not _is_filled(normalized.get(SUBJECT_SET)):
        normalized[SUBJECT_SET] = derive_subject_set(normalized)
    return normalized


def normalize_records(
    rows: Iterable[Mapping[str, Any]],
    aliases: Optional[Mapping[str, str]] = None,
) -> List[CandidateRecord]:
    key_map = build_key_map(DEFAULT_ALIASES if aliases is None else aliases)
    records = [normalize_record(row, key_map) for row in rows]
    logger.debug("Normalized %d roster rows (%d header aliases)", len(records), len(key_map))
    return records
