from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from subjects import Subject

# ── Canonical roster columns ──────────────────────────────────────────────────

REPORT_NUMBER = "SỐ BÁO DANH"
STUDENT_ID = "MÃ HỌC VIÊN"
FULL_NAME = "HỌ VÀ TÊN"
NATIONAL_ID = "SỐ CHỨNG MINH"
BIRTH_DATE = "NGÀY SINH"
RESIDENCE = "NƠI CƯ TRÚ"
LICENSE_CLASS = "HẠNG GPLX"
SUBJECT_SET = "NỘI DUNG THI"
NOTE = "Ghi chú"

CANONICAL_FIELDS = (
    REPORT_NUMBER, STUDENT_ID, FULL_NAME, BIRTH_DATE, NATIONAL_ID, RESIDENCE,
    LICENSE_CLASS, SUBJECT_SET,
) + tuple(s.column for s in Subject)

# A candidate record is a plain dict keyed by the canonical columns above,
# plus whatever unrecognized columns the uploaded file carried.
CandidateRecord = Dict[str, Any]

FIRST_TIME_TITLE = "a) Học viên dự thi lần đầu:"
RETAKE_TITLE = "b) Thí sinh thuộc đối tượng cấp lại giấy phép lái xe và thí sinh tự do:"
GRAND_TOTAL_LABEL = "a+b"


class SubjectResult(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0


class LicenseClassData(BaseModel):
    license_class: str
    total_applications: int = 0
    total_participants: int = 0
    theory: SubjectResult = Field(default_factory=SubjectResult)
    simulation: SubjectResult = Field(default_factory=SubjectResult)
    practical_course: SubjectResult = Field(default_factory=SubjectResult)
    on_road: SubjectResult = Field(default_factory=SubjectResult)
    final_pass: int = 0

    def result_for(self, subject: Subject) -> SubjectResult:
        return getattr(self, subject.attr)


class TableData(BaseModel):
    title: str
    rows: List[LicenseClassData] = []


class AppData(BaseModel):
    first_time: TableData
    retake: TableData


class Attendee(BaseModel):
    id: str
    name: str
    role: str = ""


class ReportMetadata(BaseModel):
    meeting_time: str = ""
    meeting_location: str = ""
    organizer: str = ""
    attendees: List[Attendee] = []
    technical_error_sbd: Optional[str] = None


class TrainingUnit(BaseModel):
    id: str
    code: str  # student-ID prefix, e.g. "2721"
    name: str
    created_at: Optional[int] = None


class SavedSession(BaseModel):
    id: str
    name: str
    created_at: int  # epoch milliseconds
    report_date: str  # ISO date or datetime
    student_records: List[Dict[str, Any]] = []
    app_data: Optional[AppData] = None
    grand_total: Optional[LicenseClassData] = None
    report_metadata: ReportMetadata = Field(default_factory=ReportMetadata)
    training_units: List[TrainingUnit] = []


# ── Conflict audit ────────────────────────────────────────────────────────────

RETAKE_PASSED = "retake_passed"
OUTSIDE_FRAMEWORK = "outside_framework"


class ConflictFinding(BaseModel):
    student_id: str
    student_name: str
    subject: str  # single-letter subject code
    kind: str  # RETAKE_PASSED | OUTSIDE_FRAMEWORK
    message: str
    previous_session_id: str
    previous_session_name: str
    previous_date: str  # dd/mm/yyyy
    target_session_id: Optional[str] = None


class ConflictDetail(BaseModel):
    subject: str
    kind: str
    message: str
    previous_session_name: str
    previous_date: str
    source_session_id: str
    target_session_id: Optional[str] = None


class GroupedFinding(BaseModel):
    student_id: str
    student_name: str
    conflicts: List[ConflictDetail] = []


# ── Fees ──────────────────────────────────────────────────────────────────────

class FeeRates(BaseModel):
    theory: int = 100_000
    simulation: int = 100_000
    practical_course: int = 350_000
    on_road: int = 80_000
    licensing: int = 115_000

    def rate_for(self, subject: Subject) -> int:
        return getattr(self, subject.attr)


class FeeLine(BaseModel):
    count: int = 0
    total: int = 0


class FeeBreakdown(BaseModel):
    theory: FeeLine = Field(default_factory=FeeLine)
    simulation: FeeLine = Field(default_factory=FeeLine)
    practical_course: FeeLine = Field(default_factory=FeeLine)
    on_road: FeeLine = Field(default_factory=FeeLine)
    total: int = 0


class FeeSummary(BaseModel):
    by_registered: FeeBreakdown
    by_attendance: FeeBreakdown
    licensing: FeeLine
    by_registered_total: int
    by_attendance_total: int
    by_registered_total_words: str = ""
    by_attendance_total_words: str = ""


# ── Request / response payloads ───────────────────────────────────────────────

class RosterRows(BaseModel):
    rows: List[Dict[str, Any]]
    session_id: Optional[str] = None  # excluded from the history it is audited against


class ProcessedRoster(BaseModel):
    student_records: List[Dict[str, Any]]
    app_data: AppData
    grand_total: LicenseClassData
    fees: FeeSummary
    conflicts: List[ConflictFinding] = []
    audit_available: bool = True
    summary: str = ""


class StudentCorrection(BaseModel):
    name: Optional[str] = None
    national_id: Optional[str] = None


class ResultFix(BaseModel):
    content: str = ""
    theory: str = ""
    simulation: str = ""
    practical_course: str = ""
    on_road: str = ""


class LookupHit(BaseModel):
    session_id: str
    session_name: str
    report_date: str
    outcome: str
    record: Dict[str, Any]


class PeriodTotals(BaseModel):
    theory: int = 0
    simulation: int = 0
    practical_course: int = 0
    on_road: int = 0
    applications: int = 0
    passed: int = 0


class PeriodAggregate(BaseModel):
    sessions: List[Dict[str, Any]] = []
    totals: PeriodTotals = Field(default_factory=PeriodTotals)


# ── Report dates ──────────────────────────────────────────────────────────────

def parse_report_date(value: Optional[str]) -> datetime:
    """Parse an ISO report date into a naive UTC datetime.

    Unparseable or missing dates sort first (``datetime.min``).
    """
    if not value:
        return datetime.min
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_report_date(value: Optional[str]) -> str:
    parsed = parse_report_date(value)
    if parsed == datetime.min:
        return str(value or "")
    return parsed.strftime("%d/%m/%Y")


# ── Report views ──────────────────────────────────────────────────────────────

class UnitStatistics(BaseModel):
    name: str
    total: int = 0
    passed: int = 0
    failed: int = 0
    absent: int = 0
    theory_pass: int = 0
    simulation_pass: int = 0
    practical_course_pass: int = 0
    on_road_pass: int = 0
