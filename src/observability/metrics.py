"""
Prometheus metrics collection for the rule content storage

This module provides metrics instrumentation for content reconciliation,
content queries and storage errors.
"""
import os

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from src.storage.errors import classify_error

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# CONTENT METRICS
# =======================

rule_content_loads_total = Counter(
    name="rule_content_loads_total",
    documentation="Total number of rule content reconciliations",
    labelnames=["status"],  # status: success, error
    registry=REGISTRY,
)

rule_error_keys_loaded = Gauge(
    name="rule_error_keys_loaded",
    documentation="Number of rule error keys written by the last successful reconciliation",
    registry=REGISTRY,
)

content_row_decode_failures_total = Counter(
    name="content_row_decode_failures_total",
    documentation="Rows skipped because they could not be decoded",
    labelnames=["query"],
    registry=REGISTRY,
)

# =======================
# STORAGE METRICS
# =======================

storage_operation_duration_seconds = Histogram(
    name="storage_operation_duration_seconds",
    documentation="Time spent in storage operations",
    labelnames=["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
    registry=REGISTRY,
)

storage_errors_total = Counter(
    name="storage_errors_total",
    documentation="Storage operation failures by error kind",
    labelnames=["operation", "kind"],
    registry=REGISTRY,
)


# =======================
# EXPORT
# =======================

def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


# =======================
# CONTEXT MANAGERS
# =======================

class track_operation:
    """
    Time a storage operation and count its failures by error kind

    Usage:
        with track_operation("vote_on_rule"):
            # do work
            pass
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.timer = None

    def __enter__(self):
        self.timer = storage_operation_duration_seconds.labels(operation=self.operation).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        if exc_val is not None:
            storage_errors_total.labels(
                operation=self.operation, kind=classify_error(exc_val).value
            ).inc()
        return False


def record_content_load(error_key_count: int | None) -> None:
    """
    Record the outcome of a content reconciliation.

    Args:
        error_key_count: Error keys written, or None when the load failed
    """
    if error_key_count is None:
        rule_content_loads_total.labels(status="error").inc()
        return

    rule_content_loads_total.labels(status="success").inc()
    rule_error_keys_loaded.set(error_key_count)
