"""Lifecycle state and transitions over HTTP."""

import pytest


@pytest.mark.integration
class TestLifecycleState:
    def test_state_with_actions_and_history(self, client, open_and_book, teacher_headers):
        booked = open_and_book("Omar")

        response = client.get(f"/api/v1/lifecycle/{booked['subject_id']}", headers=teacher_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["subject_type"] == "student"
        assert body["available_actions"] == ["contact", "edit", "status_change"]
        assert [h["to_status"] for h in body["history"]] == ["pending"]

    def test_anonymous_view_offers_no_actions(self, client, open_and_book):
        booked = open_and_book("Omar")
        body = client.get(f"/api/v1/lifecycle/{booked['subject_id']}").json()
        assert body["available_actions"] == ["contact"]

    def test_member_reports_family_status(self, client, open_and_book):
        booked = open_and_book("Omar", "Laila")
        body = client.get(f"/api/v1/lifecycle/{booked['student_ids'][0]}").json()
        assert body["subject_id"] == booked["family_group_id"]
        assert body["subject_type"] == "family"

    def test_unknown_subject(self, client):
        response = client.get("/api/v1/lifecycle/01J00000000000000000000000")
        assert response.status_code == 404
        assert response.json()["code"] == "SUBJECT_NOT_FOUND"


@pytest.mark.integration
class TestTransitions:
    def test_confirm(self, client, open_and_book, teacher_headers):
        booked = open_and_book("Omar")

        response = client.post(
            f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
            json={"event": "teacher_confirms"},
            headers=teacher_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "confirmed"
        assert body["history"][-1]["actor_id"] == "teacher-actor-1"

    def test_invalid_transition(self, client, open_and_book, teacher_headers):
        booked = open_and_book("Omar")

        response = client.post(
            f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
            json={"event": "trial_completed"},
            headers=teacher_headers,
        )

        assert response.status_code == 409
        problem = response.json()
        assert problem["code"] == "INVALID_TRANSITION"
        assert problem["errors"]["current_state"] == "pending"
        assert problem["errors"]["attempted_event"] == "trial_completed"
        assert client.get(f"/api/v1/lifecycle/{booked['subject_id']}").json()["status"] == "pending"

    def test_forbidden_role(self, client, open_and_book, sales_headers):
        booked = open_and_book("Omar")
        response = client.post(
            f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
            json={"event": "teacher_confirms"},
            headers=sales_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "TRANSITION_FORBIDDEN"

    def test_requires_actor(self, client, open_and_book):
        booked = open_and_book("Omar")
        response = client.post(
            f"/api/v1/lifecycle/{booked['subject_id']}/transitions", json={"event": "teacher_confirms"}
        )
        assert response.status_code == 401

    def test_unexpected_fields_are_rejected(self, client, open_and_book, teacher_headers):
        booked = open_and_book("Omar")
        response = client.post(
            f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
            json={"event": "teacher_confirms", "status": "paid"},
            headers=teacher_headers,
        )
        assert response.status_code == 422

    def test_payment_link_event_points_to_its_endpoint(self, client, completed_trial, sales_headers):
        booked = completed_trial("Omar")

        response = client.post(
            f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
            json={"event": "create_payment_link", "payload": {"package_id": "nope", "currency": "XXX"}},
            headers=sales_headers,
        )

        assert response.status_code == 422
        problem = response.json()
        assert problem["code"] == "USE_DEDICATED_ENDPOINT"
        assert problem["errors"]["attempted_event"] == "create_payment_link"
        assert client.get(f"/api/v1/lifecycle/{booked['subject_id']}").json()["status"] == "trial-completed"

    def test_active_student_can_be_dropped(self, client, completed_trial, sales_headers, make_package):
        booked = completed_trial("Omar")
        package = make_package()
        link = client.post(
            f"/api/v1/students/{booked['subject_id']}/payment-link",
            json={"package_id": package.id, "currency": "USD"},
            headers=sales_headers,
        )
        assert link.status_code == 201, link.text

        steps = [
            ("payment_received", {"payment_reference": "pi_123"}),
            ("registration_completed", {"all_sessions_scheduled": True}),
            ("drop", {}),
        ]
        for event, payload in steps:
            response = client.post(
                f"/api/v1/lifecycle/{booked['subject_id']}/transitions",
                json={"event": event, "payload": payload},
                headers=sales_headers,
            )
            assert response.status_code == 200, response.text

        assert response.json()["status"] == "dropped"
