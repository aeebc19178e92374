def _post_session(client, session_id, report_date, records, **extra):
    payload = {
        "id": session_id,
        "name": f"Kỳ {session_id}",
        "created_at": 1,
        "report_date": report_date,
        "student_records": records,
    }
    payload.update(extra)
    assert client.post("/api/sessions", json=payload).status_code == 200


def _roster(make_record):
    return [
        make_record(student_id="99001", name="Trần Văn An", content="L", theory="ĐẠT", **{"SỐ BÁO DANH": "5"}),
        make_record(student_id="2721001", name="Lê Thị Bình", license_class="C1", content="LM",
                    theory="ĐẠT", simulation="Trượt"),
        make_record(student_id="99002", name="Phạm Văn Cư"),
    ]


def test_session_students_by_outcome(client, make_record):
    _post_session(client, "s1", "2024-03-01", _roster(make_record))

    data = client.get("/api/sessions/s1/students").json()
    assert len(data["students"]) == 3
    assert data["summary"] == "Tổng số: 3" + "\u00a0" * 4 + "Hạng B: 2; Hạng C1: 1"

    failed = client.get("/api/sessions/s1/students", params={"outcome": "failed"}).json()
    assert [s["HỌ VÀ TÊN"] for s in failed["students"]] == ["Lê Thị Bình"]
    assert failed["students"][0]["note"] == "Thi lại nội dung: LM"

    passed = client.get("/api/sessions/s1/students", params={"outcome": "passed"}).json()
    assert passed["students"][0]["note"] == "Thi lần đầu"

    absent = client.get("/api/sessions/s1/students", params={"outcome": "absent"}).json()
    assert [s["MÃ HỌC VIÊN"] for s in absent["students"]] == ["99002"]


def test_session_students_bad_outcome(client, make_record):
    _post_session(client, "s1", "2024-03-01", _roster(make_record))
    assert client.get("/api/sessions/s1/students", params={"outcome": "maybe"}).status_code == 422


def test_session_summary(client, make_record):
    _post_session(client, "s1", "2024-03-01", _roster(make_record))
    data = client.get("/api/sessions/s1/summary").json()
    assert data["grand_total"]["final_pass"] == 1
    assert data["pass_rates"]["overall"] == 50.0
    assert data["pass_rates"]["theory"] == 100.0
    assert data["pass_rates"]["simulation"] == 0.0


def test_session_summary_without_totals(client):
    _post_session(client, "s1", "2024-03-01", [])
    assert client.get("/api/sessions/s1/summary").status_code == 400


def test_unit_statistics_uses_stored_units(client, make_record):
    client.post("/api/training-units", json={"id": "u1", "code": "2721", "name": "Trung tâm A"})
    _post_session(client, "s1", "2024-03-01", _roster(make_record))
    stats = {s["name"]: s for s in client.get("/api/sessions/s1/unit-statistics").json()}
    assert stats["Trung tâm A"]["failed"] == 1
    assert stats["Thí sinh tự do / Khác"]["total"] == 2


def test_unit_statistics_prefers_session_units(client, make_record):
    client.post("/api/training-units", json={"id": "u1", "code": "2721", "name": "Trung tâm A"})
    _post_session(client, "s1", "2024-03-01", _roster(make_record),
                  training_units=[{"id": "x", "code": "99", "name": "Trung tâm 99"}])
    names = {s["name"] for s in client.get("/api/sessions/s1/unit-statistics").json()}
    assert names == {"Trung tâm 99", "Thí sinh tự do / Khác"}


def test_student_lookup(client, make_record):
    _post_session(client, "s2", "2024-04-01", [make_record(student_id="99001", name="Trần Văn An", theory="Trượt")])
    _post_session(client, "s1", "2024-03-01", _roster(make_record))

    hits = client.get("/api/students/lookup", params={"q": "trần văn"}).json()
    assert [h["session_id"] for h in hits] == ["s1", "s2"]
    assert hits[0]["outcome"] == "passed"

    assert [h["record"]["HỌ VÀ TÊN"] for h in client.get("/api/students/lookup", params={"q": "5"}).json()] == [
        "Trần Văn An",
    ]
    assert client.get("/api/students/lookup").json() == []


def test_period_aggregate(client, make_record):
    _post_session(client, "mar", "2024-03-01", _roster(make_record))
    _post_session(client, "apr", "2024-04-10", _roster(make_record))

    data = client.get("/api/reports/aggregate", params={"start": "2024-03-01", "end": "2024-03-31"}).json()
    assert [s["id"] for s in data["sessions"]] == ["mar"]
    assert data["totals"]["applications"] == 3
    assert data["totals"]["passed"] == 1
    assert data["totals"]["theory"] == 2

    data = client.get("/api/reports/aggregate").json()
    assert data["totals"]["applications"] == 6


def test_period_aggregate_inverted_range(client):
    resp = client.get("/api/reports/aggregate", params={"start": "2024-05-01", "end": "2024-04-01"})
    assert resp.status_code == 400
