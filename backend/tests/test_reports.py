from datetime import date

from classifier import CandidateOutcome
from models import LicenseClassData, NATIONAL_ID, REPORT_NUMBER, SubjectResult, TrainingUnit
from pipeline import process_roster, refresh_aggregates
from reports import (
    UNKNOWN_UNIT, aggregate_period, candidate_note, class_summary_string,
    identify_training_unit, lookup_student, pass_rates, split_by_outcome, unit_statistics,
)
from settings import AppSettings

NBSP4 = "\u00a0" * 4


def test_class_summary_string(make_record):
    records = [make_record(license_class=c) for c in ("C1", "B", "B")]
    assert class_summary_string(records) == f"Tổng số: 3{NBSP4}Hạng B: 2; Hạng C1: 1"
    assert class_summary_string([]) == "Tổng số: 0"


def test_candidate_note(make_record):
    assert candidate_note(make_record(student_id="2721001", content="l+đ")) == "Thi lại nội dung: L+D"
    assert candidate_note(make_record(student_id="1")) == "Thi lần đầu"


def test_longest_unit_prefix_wins():
    units = [
        TrainingUnit(id="1", code="27", name="Trung tâm 27"),
        TrainingUnit(id="2", code="2721", name="Trung tâm 2721"),
    ]
    assert identify_training_unit("2721999", units) == "Trung tâm 2721"
    assert identify_training_unit("2799", units) == "Trung tâm 27"
    assert identify_training_unit("99", units) == ""
    assert identify_training_unit(None, units) == ""


def test_split_by_outcome(make_record):
    records = [
        make_record(student_id="1", content="L", theory="ĐẠT"),
        make_record(student_id="2", content="L", theory="Trượt"),
        make_record(student_id="3"),
    ]
    buckets = split_by_outcome(records)
    assert [r["MÃ HỌC VIÊN"] for r in buckets[CandidateOutcome.PASSED]] == ["1"]
    assert [r["MÃ HỌC VIÊN"] for r in buckets[CandidateOutcome.FAILED]] == ["2"]
    assert [r["MÃ HỌC VIÊN"] for r in buckets[CandidateOutcome.ABSENT]] == ["3"]


def test_pass_rates():
    grand_total = LicenseClassData(
        license_class="a+b",
        total_participants=8,
        final_pass=6,
        theory=SubjectResult(total=3, passed=1, failed=2),
    )
    rates = pass_rates(grand_total)
    assert rates["overall"] == 75.0
    assert rates["theory"] == 33.33
    assert rates["on_road"] == 0.0


def test_unit_statistics(make_record):
    units = [TrainingUnit(id="1", code="2721", name="Trung tâm A")]
    records = [
        make_record(student_id="2721001", content="L", theory="ĐẠT"),
        make_record(student_id="2721002", content="LM", theory="ĐẠT", simulation="Trượt"),
        make_record(student_id="55"),
    ]
    stats = {s.name: s for s in unit_statistics(records, units)}
    unit = stats["Trung tâm A"]
    assert (unit.total, unit.passed, unit.failed, unit.absent) == (2, 1, 1, 0)
    assert unit.theory_pass == 2
    assert unit.simulation_pass == 0
    assert stats[UNKNOWN_UNIT].absent == 1


def test_lookup_student(make_record, make_session):
    sessions = [
        make_session("B", "2024-02-01", [
            make_record(student_id="2721001", name="Lê Văn Cường", theory="ĐẠT", content="L",
                        **{REPORT_NUMBER: "15", NATIONAL_ID: "0792"}),
        ]),
        make_session("A", "2024-01-01", [
            make_record(student_id="2721001", name="Lê Văn Cường", theory="Trượt", content="L"),
            make_record(student_id="88", name="Phạm Thị Dung", **{REPORT_NUMBER: "150"}),
        ]),
    ]
    hits = lookup_student(sessions, "cường")
    assert [h.session_id for h in hits] == ["A", "B"]
    assert [h.outcome for h in hits] == ["failed", "passed"]

    assert [h.session_id for h in lookup_student(sessions, "079")] == ["B"]
    # report numbers match exactly
    assert [h.record["HỌ VÀ TÊN"] for h in lookup_student(sessions, "15")] == ["Lê Văn Cường"]
    assert lookup_student(sessions, "  ") == []


def test_aggregate_period(make_session):
    def with_total(session_id, report_date, applications, passed):
        session = make_session(session_id, report_date, [])
        return session.model_copy(update={"grand_total": LicenseClassData(
            license_class="a+b",
            total_applications=applications,
            final_pass=passed,
            theory=SubjectResult(total=applications),
        )})

    sessions = [
        with_total("feb", "2024-02-15", 10, 4),
        with_total("jan", "2024-01-31T23:00:00", 5, 5),
        with_total("mar", "2024-03-01", 7, 1),
        make_session("blank", "2024-02-01", []),
    ]
    result = aggregate_period(sessions, date(2024, 1, 31), date(2024, 2, 29))
    assert [s["id"] for s in result.sessions] == ["jan", "feb"]
    assert result.totals.applications == 15
    assert result.totals.passed == 9
    assert result.totals.theory == 15

    assert len(aggregate_period(sessions).sessions) == 3


# ── pipeline ──────────────────────────────────────────────────────────────────

def test_process_roster_without_history():
    rows = [{"MA HV": "1", "HANG": "B", "LT": "ĐẠT"}]
    result = process_roster(rows, AppSettings(), history=None)
    assert result.audit_available is False
    assert result.conflicts == []
    assert result.grand_total.final_pass == 1
    assert result.student_records[0]["NỘI DUNG THI"] == "L"
    assert result.fees.by_attendance.theory.count == 1
    assert result.summary.startswith("Tổng số: 1")


def test_process_roster_audits_history(make_record, make_session):
    history = [make_session("A", "2024-01-01", [make_record(student_id="1", content="L", theory="ĐẠT")])]
    rows = [{"MA HV": "1", "HANG": "B", "ND THI": "L", "LT": "ĐẠT"}]
    result = process_roster(rows, AppSettings(), history=history)
    assert result.audit_available is True
    assert len(result.conflicts) == 1

    assert process_roster(rows, AppSettings(), history=history, session_id="A").conflicts == []


def test_refresh_aggregates(make_record, make_session):
    session = make_session("A", "2024-01-01", [make_record(theory="ĐẠT", content="L")])
    refreshed = refresh_aggregates(session, AppSettings())
    assert refreshed.grand_total.final_pass == 1
    assert session.grand_total is None

    empty = make_session("E", "2024-01-01", [])
    assert refresh_aggregates(empty, AppSettings()) is empty
