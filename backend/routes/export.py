from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from conflicts import audit_session_history
from fees import calculate_fees
from models import (
    CANONICAL_FIELDS, NOTE, ConflictFinding, FeeSummary, LicenseClassData, SavedSession,
    format_report_date,
)
from reports import candidate_note, split_by_outcome
from classifier import CandidateOutcome
from routes.sessions import get_session_or_404, load_history
from settings import load_app_settings
from subjects import SUBJECT_ORDER
import io
import logging
import openpyxl

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

RESULT_HEADERS = ["Hạng", "Tổng số hồ sơ", "Số dự thi"] + [
    f"{s.label} - {part}" for s in SUBJECT_ORDER for part in ("Dự thi", "Đạt", "Trượt")
] + ["Đạt cuối cùng"]

STUDENT_HEADERS = ["STT", *CANONICAL_FIELDS, NOTE]


def _result_row(row: LicenseClassData) -> list:
    values = [row.license_class, row.total_applications, row.total_participants]
    for subject in SUBJECT_ORDER:
        result = row.result_for(subject)
        values += [result.total, result.passed, result.failed]
    values.append(row.final_pass)
    return values


def _fee_rows(fees: FeeSummary) -> List[list]:
    rows = [["Khoản thu", "Nội dung", "Số lượng", "Thành tiền"]]
    for heading, breakdown in (("Theo quyết định", fees.by_registered), ("Thực tế dự thi", fees.by_attendance)):
        for subject in SUBJECT_ORDER:
            line = getattr(breakdown, subject.attr)
            rows.append([heading, subject.label, line.count, line.total])
        rows.append([heading, "Cộng", None, breakdown.total])
    rows.append(["Lệ phí cấp GPLX", "", fees.licensing.count, fees.licensing.total])
    rows.append(["Tổng (thực tế + lệ phí)", fees.by_attendance_total_words, None, fees.by_attendance_total])
    rows.append(["Tổng (quyết định + lệ phí)", fees.by_registered_total_words, None, fees.by_registered_total])
    return rows


def build_general_report(session: SavedSession, fees: Optional[FeeSummary]) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "BaoCaoTongHop"
    ws.append([f"TỔNG HỢP KẾT QUẢ KỲ SÁT HẠCH - {session.name}"])
    ws.append([f"Ngày báo cáo: {format_report_date(session.report_date)}"])

    if session.app_data is not None:
        for table in (session.app_data.first_time, session.app_data.retake):
            ws.append([])
            ws.append([table.title])
            ws.append(RESULT_HEADERS)
            for row in table.rows:
                ws.append(_result_row(row))
    if session.grand_total is not None:
        ws.append([])
        ws.append(["Tổng cộng (a+b)"])
        ws.append(RESULT_HEADERS)
        ws.append(_result_row(session.grand_total))

    if fees is not None:
        fee_ws = wb.create_sheet("LePhi")
        for row in _fee_rows(fees):
            fee_ws.append(row)
    return wb


def build_student_list(records: List[dict], title: str, retake_prefixes) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "DanhSach"
    ws.append([title])
    ws.append(STUDENT_HEADERS)
    for index, record in enumerate(records, start=1):
        values = [index] + [record.get(h, "") for h in STUDENT_HEADERS[1:-1]]
        values.append(candidate_note(record, retake_prefixes))
        ws.append(values)
    return wb


def build_audit_workbook(findings: List[ConflictFinding]) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "RaSoat"
    ws.append(["Mã HV", "Họ và tên", "Nội dung", "Loại", "Mô tả", "Kỳ đối chiếu", "Ngày", "Kỳ bị kiểm tra"])
    for f in findings:
        ws.append([
            f.student_id, f.student_name, f.subject, f.kind, f.message,
            f.previous_session_name, f.previous_date, f.target_session_id or "",
        ])
    return wb


def _stream(wb: openpyxl.Workbook, filename: str) -> StreamingResponse:
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/export/sessions/{session_id}/xlsx")
def export_session_report(session_id: str):
    logger.info("GET /export/sessions/%s/xlsx", session_id)
    session = get_session_or_404(session_id)
    if session.app_data is None and session.grand_total is None:
        raise HTTPException(status_code=400, detail="Session has no computed totals")
    fees = None
    if session.grand_total is not None:
        fees = calculate_fees(session.grand_total, session.student_records, load_app_settings().fee_rates)
    return _stream(build_general_report(session, fees), f"bao_cao_{session_id}.xlsx")


@router.get("/export/sessions/{session_id}/students/xlsx")
def export_student_list(session_id: str, passed: bool = True):
    logger.info("GET /export/sessions/%s/students/xlsx - passed: %s", session_id, passed)
    session = get_session_or_404(session_id)
    outcome = CandidateOutcome.PASSED if passed else CandidateOutcome.FAILED
    records = split_by_outcome(session.student_records)[outcome]
    title = "DANH SÁCH THÍ SINH ĐẠT" if passed else "DANH SÁCH THÍ SINH KHÔNG ĐẠT"
    wb = build_student_list(records, title, load_app_settings().retake_prefixes)
    filename = "Danh_Sach_Dat.xlsx" if passed else "Danh_Sach_Truot.xlsx"
    logger.info("GET /export/sessions/%s/students/xlsx - %d students", session_id, len(records))
    return _stream(wb, filename)


@router.get("/export/audit/xlsx")
def export_audit():
    logger.info("GET /export/audit/xlsx")
    findings = audit_session_history(load_history())
    logger.info("GET /export/audit/xlsx - %d findings", len(findings))
    return _stream(build_audit_workbook(findings), "ra_soat_xung_dot.xlsx")
