"""
API fixtures: a TestClient bound to the per-test database session.

Route-level services run on the real clock, so dates used here are
relative to today.
"""

from datetime import date, timedelta
from typing import Callable, Dict

from fastapi.testclient import TestClient
import pytest

from trialdesk.api.dependencies.database import get_db
from trialdesk.main import app

SALES_HEADERS = {"X-Actor-Id": "sales-agent-1", "X-Actor-Role": "sales"}
TEACHER_HEADERS = {"X-Actor-Id": "teacher-actor-1", "X-Actor-Role": "teacher"}
ADMIN_HEADERS = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sales_headers() -> Dict[str, str]:
    return dict(SALES_HEADERS)


@pytest.fixture
def teacher_headers() -> Dict[str, str]:
    return dict(TEACHER_HEADERS)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def trial_date() -> date:
    # Far enough ahead to clear the same-day lock in every zone
    return date.today() + timedelta(days=10)


@pytest.fixture
def open_and_book(client, make_teacher, trial_date, sales_headers, teacher_headers) -> Callable[..., dict]:
    """Open a 17:30 Cairo slot for a new teacher, search it and book it."""

    def _book(*names: str) -> dict:
        teacher = make_teacher()
        opened = client.post(
            "/api/v1/availability/slots",
            json={"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [17.5]},
            headers=teacher_headers,
        )
        assert opened.status_code == 201, opened.text

        search = client.get(
            "/api/v1/availability/search",
            params={"date": trial_date.isoformat(), "client_timezone": "Africa/Cairo", "hour": 17.5},
        )
        assert search.status_code == 200, search.text
        group = next(
            g for g in search.json()["groups"] if teacher.id in [m["teacher_id"] for m in g["members"]]
        )

        booked = client.post(
            "/api/v1/trials",
            headers=sales_headers,
            json={
                "students": [{"name": name, "age": 10} for name in (names or ("Omar",))],
                "contact": {"name": "Mona Hassan", "phone": "+201000000001", "country": "EG"},
                "client_timezone": "Africa/Cairo",
                "teacher_type": "mixed",
                "slot": {
                    "start_utc": group["start_utc"],
                    "end_utc": group["end_utc"],
                    "teacher_ids": [teacher.id],
                },
            },
        )
        assert booked.status_code == 201, booked.text
        return booked.json()

    return _book


@pytest.fixture
def completed_trial(client, open_and_book, teacher_headers) -> Callable[..., dict]:
    """Book, confirm and complete a trial; returns the booking result."""

    def _complete(*names: str) -> dict:
        booked = open_and_book(*names)
        for event in ("teacher_confirms", "trial_completed"):
            response = client.post(
                f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
                json={"event": event},
                headers=teacher_headers,
            )
            assert response.status_code == 200, response.text
        return booked

    return _complete
