import io
import zipfile

import openpyxl
import routes.rosters


def _xlsx_bytes(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _save_history(client, make_record):
    client.post("/api/sessions", json={
        "id": "prev",
        "name": "Kỳ tháng 1",
        "created_at": 1,
        "report_date": "2024-01-20",
        "student_records": [make_record(student_id="2721001", content="LM", theory="ĐẠT")],
    })


def test_process_rows(client):
    resp = client.post("/api/rosters/process", json={"rows": [
        {"SBD": "1", "Mã HV": "99001", "Hạng": "B", "LT": "Đạt", "MP": "Đạt"},
        {"SBD": "2", "Mã HV": "2721001", "Hạng": "B", "ND THI": "L", "LT": "Trượt"},
        {"SBD": "3", "Mã HV": "99002", "Hạng": "C1"},
    ]})
    assert resp.status_code == 200
    data = resp.json()
    assert data["audit_available"] is True
    assert data["conflicts"] == []
    assert data["grand_total"]["total_applications"] == 3
    assert data["grand_total"]["total_participants"] == 2
    assert data["grand_total"]["final_pass"] == 1
    assert [r["license_class"] for r in data["app_data"]["first_time"]["rows"]] == ["B", "C1"]
    assert data["app_data"]["retake"]["rows"][0]["theory"]["failed"] == 1
    assert data["student_records"][0]["NỘI DUNG THI"] == "L+M"
    assert data["fees"]["by_attendance"]["theory"]["count"] == 2


def test_process_rows_reports_conflicts(client, make_record):
    _save_history(client, make_record)
    resp = client.post("/api/rosters/process", json={"rows": [
        {"MA HV": "2721001", "HO VA TEN": "Lê Văn C", "HANG": "B", "NỘI DUNG THI": "LH"},
    ]})
    conflicts = resp.json()["conflicts"]
    assert [(c["subject"], c["kind"]) for c in conflicts] == [
        ("L", "retake_passed"),
        ("H", "outside_framework"),
    ]
    assert conflicts[0]["previous_session_name"] == "Kỳ tháng 1"
    assert conflicts[0]["previous_date"] == "20/01/2024"


def test_process_rows_excludes_own_session(client, make_record):
    _save_history(client, make_record)
    resp = client.post("/api/rosters/process", json={
        "rows": [{"MA HV": "2721001", "HANG": "B", "NỘI DUNG THI": "L"}],
        "session_id": "prev",
    })
    assert resp.json()["conflicts"] == []


def test_process_rows_history_unreadable(client, monkeypatch):
    def broken():
        raise OSError("disk gone")

    monkeypatch.setattr(routes.rosters, "load_history", broken)
    resp = client.post("/api/rosters/process", json={"rows": [{"MA HV": "1", "HANG": "B", "LT": "ĐẠT"}]})
    assert resp.status_code == 200
    assert resp.json()["audit_available"] is False
    assert resp.json()["grand_total"]["final_pass"] == 1


def test_upload_xlsx(client):
    content = _xlsx_bytes([
        [None, None, None],
        ["Mã HV", "Hạng GPLX", "Lý thuyết", "Sa hình"],
        ["99001", "B", "Đạt", 1],
        [None, None, None, None],
        ["99002", "B", "Trượt", None],
    ])
    resp = client.post(
        "/api/rosters/upload",
        files={"file": ("roster.xlsx", content, "application/octet-stream")},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["student_records"]) == 2
    assert data["student_records"][0]["NỘI DUNG THI"] == "L+H"
    assert data["grand_total"]["final_pass"] == 1
    assert data["summary"].startswith("Tổng số: 2")


def test_upload_csv_with_session_id(client, make_record):
    _save_history(client, make_record)
    content = "MA HV,HANG,ND THI,LT\n2721001,B,L,Đạt\n".encode("utf-8-sig")
    resp = client.post(
        "/api/rosters/upload",
        files={"file": ("roster.csv", content, "text/csv")},
        data={"session_id": "prev"},
    )
    assert resp.status_code == 200
    assert resp.json()["conflicts"] == []
    assert resp.json()["grand_total"]["final_pass"] == 1


def test_upload_corrupt_xlsx(client):
    resp = client.post(
        "/api/rosters/upload",
        files={"file": ("roster.xlsx", b"not a workbook", "application/octet-stream")},
    )
    assert resp.status_code == 400


def test_upload_xlsx_with_malformed_xml(client):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types><unclosed")
    resp = client.post(
        "/api/rosters/upload",
        files={"file": ("roster.xlsx", buffer.getvalue(), "application/octet-stream")},
    )
    assert resp.status_code == 400
    assert "Could not read roster file" in resp.json()["detail"]


def test_upload_unsupported_type(client):
    resp = client.post("/api/rosters/upload", files={"file": ("roster.pdf", b"%PDF", "application/pdf")})
    assert resp.status_code == 400
    assert "Unsupported" in resp.json()["detail"]


def test_upload_header_only(client):
    content = _xlsx_bytes([["Mã HV", "Hạng GPLX"]])
    resp = client.post("/api/rosters/upload", files={"file": ("roster.xlsx", content, "application/octet-stream")})
    assert resp.status_code == 400
    assert "empty" in resp.json()["detail"].lower()
