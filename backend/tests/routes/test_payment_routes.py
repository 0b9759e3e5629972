"""Family and individual payment flows over HTTP."""

import pytest


@pytest.mark.integration
class TestFamilyPayment:
    def test_full_family_flow(self, client, completed_trial, make_package, sales_headers):
        booked = completed_trial("Omar", "Laila")
        family_id = booked["family_group_id"]
        monthly_8 = make_package(name="Monthly 8", price="100.00")
        monthly_12 = make_package(name="Monthly 12", price="150.00")

        locked = client.post(f"/api/v1/families/{family_id}/currency", json={"currency": "usd"}, headers=sales_headers)
        assert locked.status_code == 200
        assert locked.json()["currency"] == "USD"

        first = client.put(
            f"/api/v1/families/{family_id}/selections/{booked['student_ids'][0]}",
            json={"package_id": monthly_8.id},
            headers=sales_headers,
        )
        assert first.status_code == 200
        assert first.json()["effective_price"] == "100.00"

        validation = client.get(f"/api/v1/families/{family_id}/validation").json()
        assert validation["is_complete"] is False
        assert validation["missing_student_ids"] == [booked["student_ids"][1]]

        incomplete = client.post(f"/api/v1/families/{family_id}/payment-link", headers=sales_headers)
        assert incomplete.status_code == 422
        assert incomplete.json()["code"] == "INCOMPLETE_FAMILY_SELECTION"

        second = client.put(
            f"/api/v1/families/{family_id}/selections/{booked['student_ids'][1]}",
            json={"package_id": monthly_12.id, "custom_price": "120.50"},
            headers=sales_headers,
        )
        assert second.json()["use_custom_price"] is True

        total = client.get(f"/api/v1/families/{family_id}/total").json()
        assert total == {
            "family_group_id": family_id,
            "currency": "USD",
            "total": "220.50",
            "selection_count": 2,
        }

        link = client.post(f"/api/v1/families/{family_id}/payment-link", headers=sales_headers)
        assert link.status_code == 201, link.text
        body = link.json()
        assert body["amount"] == "220.50"
        assert body["currency"] == "USD"
        assert body["subject_status"] == "awaiting-payment"
        assert body["external_reference"].startswith("null_")
        assert sorted(body["student_ids"]) == sorted(booked["student_ids"])

    def test_currency_cannot_switch(self, client, completed_trial, sales_headers):
        family_id = completed_trial("Omar", "Laila")["family_group_id"]
        client.post(f"/api/v1/families/{family_id}/currency", json={"currency": "EUR"}, headers=sales_headers)

        response = client.post(f"/api/v1/families/{family_id}/currency", json={"currency": "GBP"}, headers=sales_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "CURRENCY_ALREADY_LOCKED"

    def test_unknown_family(self, client):
        response = client.get("/api/v1/families/01J00000000000000000000000/total")
        assert response.status_code == 404
        assert response.json()["code"] == "FAMILY_NOT_FOUND"


@pytest.mark.integration
class TestIndividualPayment:
    def test_link_for_one_student(self, client, completed_trial, make_package, sales_headers):
        booked = completed_trial("Omar")
        package = make_package(price="80.00")

        response = client.post(
            f"/api/v1/students/{booked['subject_id']}/payment-link",
            json={"package_id": package.id, "currency": "aed"},
            headers=sales_headers,
        )

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["amount"] == "80.00"
        assert body["currency"] == "AED"
        assert body["package_id"] == package.id
        assert body["subject_status"] == "awaiting-payment"

    def test_teacher_cannot_request_link(self, client, completed_trial, make_package, teacher_headers):
        booked = completed_trial("Omar")
        package = make_package()

        response = client.post(
            f"/api/v1/students/{booked['subject_id']}/payment-link",
            json={"package_id": package.id, "currency": "USD"},
            headers=teacher_headers,
        )
        assert response.status_code == 403
