import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
LOCAL_FORM_PATH = FIXTURES_DIR / "form.html"


@pytest.fixture(scope="session")
def form_fixture_url() -> str:
    if not LOCAL_FORM_PATH.exists():
        pytest.fail(f"Local form fixture missing at {LOCAL_FORM_PATH}")
    return LOCAL_FORM_PATH.resolve().as_uri()


@pytest.fixture(scope="session")
def form_html() -> str:
    if not LOCAL_FORM_PATH.exists():
        pytest.fail(f"Local form fixture missing at {LOCAL_FORM_PATH}")
    return LOCAL_FORM_PATH.read_text()


@pytest.fixture()
def profile_payload() -> dict:
    return {
        "personal": {"name": "Asha Rao", "email": "asha@example.com", "gender": "Male", "dob": "15 March 2002"},
        "ids": {"uid": "21BCS1234"},
        "academics": {
            "tenth_percentage": "92",
            "twelfth_percentage": "88.4",
            "graduation_percentage": "78",
            "pg_percentage": "81",
            "cgpa": "8.5",
            "backlog_count": "two",
        },
        "education": {"batch": 2025, "program": "B.Tech", "stream": "Computer Science"},
        "links": {"github": "https://github.com/asha"},
    }
