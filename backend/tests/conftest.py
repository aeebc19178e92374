import pytest
import storage
from fastapi.testclient import TestClient
from main import app
from models import FULL_NAME, LICENSE_CLASS, STUDENT_ID, SUBJECT_SET, SavedSession
from subjects import Subject


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """Redirect all storage reads/writes to a temporary directory."""
    monkeypatch.setattr(storage, 'DATA_DIR', str(tmp_path))
    return tmp_path


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def make_record():
    """Build a canonical candidate record; score cells default to blank."""
    def _make(student_id="99001", license_class="B", content="LMHD",
              theory="", simulation="", practical="", road="", name="Nguyễn Văn A", **extra):
        record = {
            STUDENT_ID: student_id,
            FULL_NAME: name,
            LICENSE_CLASS: license_class,
            SUBJECT_SET: content,
            Subject.THEORY.column: theory,
            Subject.SIMULATION.column: simulation,
            Subject.PRACTICAL_COURSE.column: practical,
            Subject.ON_ROAD.column: road,
        }
        record.update(extra)
        return record
    return _make


@pytest.fixture()
def make_session():
    def _make(session_id, report_date, records, name=None, created_at=0):
        return SavedSession(
            id=session_id,
            name=name or f"Kỳ {session_id}",
            created_at=created_at,
            report_date=report_date,
            student_records=records,
        )
    return _make
