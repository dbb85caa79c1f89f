"""
Prometheus metrics for the barbershop backend.

Service timings come from the @measure_operation decorator; booking locks,
outbox delivery and payment webhooks record their own counters.
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

# Custom registry so repeated imports in tests don't collide with the default one
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "barbershop_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "barbershop_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "barbershop_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_lock_total = Counter(
    "barbershop_booking_lock_total",
    "Booking slot lock operations",
    ["action", "outcome"],
    registry=REGISTRY,
)

outbox_attempt_total = Counter(
    "barbershop_outbox_attempt_total",
    "Outbox delivery attempts",
    ["event_type"],
    registry=REGISTRY,
)

outbox_total = Counter(
    "barbershop_outbox_total",
    "Outbox delivery outcomes",
    ["status", "event_type"],
    registry=REGISTRY,
)

outbox_dispatch_seconds = Histogram(
    "barbershop_outbox_dispatch_seconds",
    "Outbox side effect execution time in seconds",
    ["event_type"],
    registry=REGISTRY,
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

bookings_created_total = Counter(
    "barbershop_bookings_created_total",
    "Bookings created by payment method",
    ["payment_method"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "barbershop_booking_transitions_total",
    "Booking status changes by target status and trigger",
    ["status", "trigger"],
    registry=REGISTRY,
)

payments_reconciled_total = Counter(
    "barbershop_payments_reconciled_total",
    "Payment status changes applied from gateway reports",
    ["source", "status"],
    registry=REGISTRY,
)

payment_webhook_total = Counter(
    "barbershop_payment_webhook_total",
    "Payment gateway notifications by outcome",
    ["outcome"],
    registry=REGISTRY,
)

_CACHE_TTL_SECONDS = 1.0


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None

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
            operation: Operation/method name (e.g., 'create_booking')
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

    @staticmethod
    def record_booking_lock(action: str, outcome: str) -> None:
        booking_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_outbox_attempt(event_type: str) -> None:
        """Increment attempt counter for outbox delivery."""
        outbox_attempt_total.labels(event_type=event_type).inc()

    @staticmethod
    def record_outbox_outcome(event_type: str, status: str) -> None:
        """Record outcome for outbox delivery."""
        outbox_total.labels(status=status, event_type=event_type).inc()

    @staticmethod
    def observe_outbox_dispatch(event_type: str, duration: float) -> None:
        outbox_dispatch_seconds.labels(event_type=event_type).observe(max(duration, 0.0))

    @staticmethod
    def record_booking_created(payment_method: str) -> None:
        bookings_created_total.labels(payment_method=payment_method).inc()

    @staticmethod
    def record_booking_transition(status: str, trigger: str) -> None:
        booking_transitions_total.labels(status=status, trigger=trigger).inc()

    @staticmethod
    def record_payment_reconciled(source: str, status: str) -> None:
        payments_reconciled_total.labels(source=source, status=status).inc()

    @staticmethod
    def record_payment_webhook(outcome: str) -> None:
        payment_webhook_total.labels(outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Exposition payload, regenerated at most once per second."""
        now = monotonic()
        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is None or ts is None or (now - ts) > _CACHE_TTL_SECONDS:
                payload = cast(bytes, generate_latest(REGISTRY))
                PrometheusMetrics._cache_payload = payload
                PrometheusMetrics._cache_ts = now
        return payload

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
