"""
Prometheus metrics module for the Jayple dispatch engine.

Service operation timings come from @measure_operation; the domain counters
below are incremented by the assignment, ledger, blocking and settlement
services.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default process metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "jayple_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "jayple_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "jayple_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

ledger_entries_total = Counter(
    "jayple_ledger_entries_total",
    "Ledger entries written",
    ["entry_type"],
    registry=REGISTRY,
)

assignments_total = Counter(
    "jayple_assignments_total",
    "Freelancer assignment outcomes",
    ["outcome"],  # assigned | reassigned | failed
    registry=REGISTRY,
)

assignment_timeouts_total = Counter(
    "jayple_assignment_timeouts_total",
    "Assignment timeout task outcomes",
    ["outcome"],  # noop | reassigned | failed | error
    registry=REGISTRY,
)

blocked_accounts_total = Counter(
    "jayple_blocked_accounts_total",
    "Provider block/unblock actions",
    ["action"],  # blocked | unblocked
    registry=REGISTRY,
)

settlements_total = Counter(
    "jayple_settlements_total",
    "Settlements created by the weekly batch",
    ["status"],
    registry=REGISTRY,
)

transaction_retries_total = Counter(
    "jayple_transaction_retries_total",
    "Optimistic transaction conflicts that triggered a retry",
    ["operation"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so call sites do not depend on metric objects directly."""

    def record_service_operation(
        self,
        service: str,
        operation: str,
        duration: float,
        status: str,
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    def record_ledger_entry(self, entry_type: str) -> None:
        ledger_entries_total.labels(entry_type=entry_type).inc()

    def record_assignment(self, outcome: str) -> None:
        assignments_total.labels(outcome=outcome).inc()

    def record_assignment_timeout(self, outcome: str) -> None:
        assignment_timeouts_total.labels(outcome=outcome).inc()

    def record_block_action(self, action: str) -> None:
        blocked_accounts_total.labels(action=action).inc()

    def record_settlement(self, status: str) -> None:
        settlements_total.labels(status=status).inc()

    def record_transaction_retry(self, operation: str) -> None:
        transaction_retries_total.labels(operation=operation).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    content_type = CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
