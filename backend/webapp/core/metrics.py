"""Prometheus metrics exposed at /metrics."""

from prometheus_client import Histogram

OBJECT_STORE_DURATION = Histogram(
    "webapp_object_store_operation_duration_seconds",
    "Duration of object store calls",
    ["operation", "outcome"],
)
