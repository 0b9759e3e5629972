"""Health and metrics endpoints."""

import pytest


@pytest.mark.integration
def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["environment"] == "test"
    assert body["reference_timezone"] == "Africa/Cairo"
    assert body["timestamp"].endswith("Z")


@pytest.mark.integration
def test_prometheus_metrics(client):
    client.get("/api/v1/health")
    response = client.get("/api/v1/metrics/prometheus")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "no-cache" in response.headers["cache-control"]
