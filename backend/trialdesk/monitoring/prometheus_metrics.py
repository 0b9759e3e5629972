"""
Prometheus metrics for the trial booking engine.

Service timings come from @BaseService.measure_operation; slot reservation,
round-robin and lifecycle counters are recorded directly by the services.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "trialdesk_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "trialdesk_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "trialdesk_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_reservations_total = Counter(
    "trialdesk_slot_reservations_total",
    "Slot reservation attempts by outcome (reserved|already_booked|locked|missing)",
    ["outcome"],
    registry=REGISTRY,
)

slot_lock_operations_total = Counter(
    "trialdesk_slot_lock_operations_total",
    "Redis slot mutex operations by action and outcome",
    ["action", "outcome"],
    registry=REGISTRY,
)

round_robin_assignments_total = Counter(
    "trialdesk_round_robin_assignments_total",
    "Teacher assignments by method and number of retries needed",
    ["method", "retries"],
    registry=REGISTRY,
)

lifecycle_transitions_total = Counter(
    "trialdesk_lifecycle_transitions_total",
    "Status lifecycle transitions by event and result",
    ["event", "result"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation name (e.g., 'book')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_slot_reservation(outcome: str) -> None:
        slot_reservations_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_slot_lock(action: str, outcome: str) -> None:
        slot_lock_operations_total.labels(action=action, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_assignment(method: str, retries: int) -> None:
        bucket = str(retries) if retries < 3 else "3+"
        round_robin_assignments_total.labels(method=method, retries=bucket).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_transition(event: str, result: str) -> None:
        lifecycle_transitions_total.labels(event=event, result=result).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts

        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = generate_latest(REGISTRY)
            PrometheusMetrics._cache_ts = monotonic()
            return cast(bytes, PrometheusMetrics._cache_payload)

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = None
            PrometheusMetrics._cache_ts = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
