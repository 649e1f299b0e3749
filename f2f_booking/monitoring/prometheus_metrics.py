"""
Prometheus metrics for booking services.

Populated by the @BaseService.measure_operation decorator and by the
booking manager's per-row outcomes. Metrics live on a private registry so
importing this module twice (tests, workers) never collides with the
default registry.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "f2f_booking_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "f2f_booking_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "f2f_booking_errors_total",
    "Total number of errors raised by service operations",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_rows_total = Counter(
    "f2f_booking_upload_rows_total",
    "Upload rows by outcome",
    ["outcome"],
    registry=REGISTRY,
)

validation_errors_total = Counter(
    "f2f_booking_validation_errors_total",
    "Row validation errors by code",
    ["code"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade used by services to record metrics."""

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
            service: Service name (e.g., 'BookingManager')
            operation: Operation/method name (e.g., 'process')
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
    def record_row_outcome(outcome: str) -> None:
        booking_rows_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_validation_error(code: str) -> None:
        validation_errors_total.labels(code=code).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)


prometheus_metrics = PrometheusMetrics()
