"""Slot maintenance and slot search over HTTP."""

import pytest

from trialdesk.models.availability import TeacherAvailabilitySlot


@pytest.mark.integration
class TestOpenAndClose:
    def test_open_is_idempotent(self, client, make_teacher, trial_date, teacher_headers):
        teacher = make_teacher()
        body = {"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [17, 17.5]}

        first = client.post("/api/v1/availability/slots", json=body, headers=teacher_headers)
        second = client.post("/api/v1/availability/slots", json=body, headers=teacher_headers)

        assert first.status_code == 201
        assert len(first.json()) == 2
        assert [s["id"] for s in second.json()] == [s["id"] for s in first.json()]
        assert all(s["is_booked"] is False for s in first.json())

    def test_unaligned_hour_is_rejected(self, client, make_teacher, trial_date, teacher_headers):
        teacher = make_teacher()
        response = client.post(
            "/api/v1/availability/slots",
            json={"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [17.25]},
            headers=teacher_headers,
        )
        assert response.status_code == 422
        assert response.json()["code"] == "REQUEST_VALIDATION_ERROR"

    def test_unknown_teacher(self, client, trial_date, teacher_headers):
        response = client.post(
            "/api/v1/availability/slots",
            json={"teacher_id": "01J00000000000000000000000", "local_date": trial_date.isoformat(), "hours": [9]},
            headers=teacher_headers,
        )
        assert response.status_code == 404
        assert response.json()["code"] == "TEACHER_NOT_FOUND"

    def test_close_open_slot(self, client, make_teacher, trial_date, teacher_headers):
        teacher = make_teacher()
        opened = client.post(
            "/api/v1/availability/slots",
            json={"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [9]},
            headers=teacher_headers,
        ).json()

        response = client.delete(f"/api/v1/availability/slots/{opened[0]['id']}", headers=teacher_headers)
        assert response.status_code == 204

        missing = client.delete(f"/api/v1/availability/slots/{opened[0]['id']}", headers=teacher_headers)
        assert missing.status_code == 404
        assert missing.json()["code"] == "SLOT_NOT_FOUND"

    def test_open_requires_actor(self, client, db, make_teacher, trial_date):
        teacher = make_teacher()
        response = client.post(
            "/api/v1/availability/slots",
            json={"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [9]},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "MISSING_ACTOR"
        assert db.query(TeacherAvailabilitySlot).count() == 0

    def test_close_requires_actor(self, client, db, make_teacher, trial_date, teacher_headers):
        teacher = make_teacher()
        opened = client.post(
            "/api/v1/availability/slots",
            json={"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [9]},
            headers=teacher_headers,
        ).json()

        response = client.delete(f"/api/v1/availability/slots/{opened[0]['id']}")
        assert response.status_code == 401
        assert db.query(TeacherAvailabilitySlot).count() == 1


@pytest.mark.integration
class TestSearch:
    def test_groups_teachers_free_at_the_same_time(self, client, make_teacher, trial_date, teacher_headers):
        teachers = [make_teacher(), make_teacher()]
        for teacher in teachers:
            client.post(
                "/api/v1/availability/slots",
                json={"teacher_id": teacher.id, "local_date": trial_date.isoformat(), "hours": [17.5]},
                headers=teacher_headers,
            )

        response = client.get(
            "/api/v1/availability/search",
            params={"date": trial_date.isoformat(), "client_timezone": "Africa/Cairo", "hour": 17.5},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_groups"] == 1
        group = body["groups"][0]
        assert group["teacher_count"] == 2
        assert sorted(m["teacher_id"] for m in group["members"]) == sorted(t.id for t in teachers)
        assert group["client_time_display"] == "5:30 PM-6:00 PM"

    def test_nothing_free_is_an_empty_list(self, client, trial_date):
        response = client.get(
            "/api/v1/availability/search",
            params={"date": trial_date.isoformat(), "client_timezone": "uae", "hour": 3},
        )
        assert response.status_code == 200
        assert response.json()["groups"] == []

    def test_unknown_timezone(self, client, trial_date):
        response = client.get(
            "/api/v1/availability/search",
            params={"date": trial_date.isoformat(), "client_timezone": "Mars/Olympus", "hour": 9},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TIMEZONE"

    def test_hour_or_range_required(self, client, trial_date):
        response = client.get(
            "/api/v1/availability/search",
            params={"date": trial_date.isoformat(), "client_timezone": "uae"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_SEARCH_HOUR"
