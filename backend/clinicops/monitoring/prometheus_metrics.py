"""
Prometheus metrics for the clinic scheduling engine.

Service timings come from the @measure_operation decorator; the domain
counters describe hold admission, calendar locking and outbox delivery.
"""

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
    "clinicops_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "clinicops_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "clinicops_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

holds_created_total = Counter(
    "clinicops_holds_created_total",
    "Holds created, split by whether coverage redirected the professional",
    ["assignment"],  # direct | covered
    registry=REGISTRY,
)

holds_rejected_total = Counter(
    "clinicops_holds_rejected_total",
    "Hold requests rejected by rule",
    ["reason"],
    registry=REGISTRY,
)

holds_expired_total = Counter(
    "clinicops_holds_expired_total",
    "Holds moved to expired by the sweep",
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "clinicops_booking_transitions_total",
    "Booking status and payment transitions",
    ["transition"],
    registry=REGISTRY,
)

calendar_lock_total = Counter(
    "clinicops_calendar_lock_total",
    "Calendar mutex outcomes",
    ["action", "outcome"],
    registry=REGISTRY,
)

event_outbox_total = Counter(
    "clinicops_event_outbox_total",
    "Outbox deliveries by outcome",
    ["status", "event_type"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

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
            service: Service name (e.g., 'HoldService')
            operation: Operation/method name (e.g., 'create_hold')
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
    def record_hold_created(covered: bool) -> None:
        holds_created_total.labels(assignment="covered" if covered else "direct").inc()

    @staticmethod
    def record_hold_rejected(reason: str) -> None:
        holds_rejected_total.labels(reason=reason).inc()

    @staticmethod
    def record_holds_expired(count: int) -> None:
        if count > 0:
            holds_expired_total.inc(count)

    @staticmethod
    def record_booking_transition(transition: str) -> None:
        booking_transitions_total.labels(transition=transition).inc()

    @staticmethod
    def record_calendar_lock(action: str, outcome: str) -> None:
        calendar_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_outbox_outcome(event_type: str, status: str) -> None:
        event_outbox_total.labels(status=status, event_type=event_type).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Global instance for easy access
prometheus_metrics = PrometheusMetrics()
