# backend/trialdesk/routes/v1/health.py
"""
Health check and metrics endpoints for monitoring and load balancer probes.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Response

from ...core.config import settings
from ...core.constants import API_VERSION, BRAND_NAME
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns basic health status including service info and environment.
    Does not touch the database.
    """
    return HealthResponse(
        status="healthy",
        service=f"{BRAND_NAME.lower()}-trialdesk",
        version=API_VERSION,
        environment=settings.environment,
        reference_timezone=settings.reference_timezone,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )


@router.get("/metrics/prometheus", include_in_schema=False, response_class=Response, response_model=None)
def get_prometheus_metrics() -> Response:
    """Expose Prometheus metrics for scraping."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
