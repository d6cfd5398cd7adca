"""
Observability module: Prometheus metrics and structured JSON logging.

- Instance lifecycle metrics (Gauge, Histograms, Counter)
- PrometheusMetrics integration for automatic Flask instrumentation
- JSON structured logging via python-json-logger
- Periodic instance gauge refresh (called from StatusMonitor)
"""

import logging
import sys

from flask import Flask
from prometheus_client import Counter, Gauge, Histogram
from prometheus_flask_exporter import PrometheusMetrics

from gateway.domain.types import InstanceStatus

logger = logging.getLogger("whatsapp-gateway")

# =============================================================================
# Prometheus Custom Metrics
# =============================================================================

INSTANCES = Gauge(
    "gateway_instances",
    "Number of registered instances by status",
    ["status"],
)

PROVISIONING_DURATION = Histogram(
    "gateway_provisioning_duration_seconds",
    "Latency of instance creation (placement, image pull, create, start)",
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)

MIGRATION_DURATION = Histogram(
    "gateway_migration_duration_seconds",
    "Latency of instance migration between nodes",
    buckets=(1, 2, 5, 10, 20, 30, 60, 120),
)

ERRORS_TOTAL = Counter(
    "gateway_errors_total",
    "Total number of errors by endpoint",
    ["endpoint"],
)


# =============================================================================
# Metrics Initialization
# =============================================================================

def init_metrics(app: Flask) -> PrometheusMetrics:
    """
    Initialize PrometheusMetrics on the Flask app.

    Auto-instruments all routes with flask_http_request_duration_seconds
    and flask_http_request_total. Exposes /metrics endpoint.
    """
    metrics = PrometheusMetrics(app, path="/metrics")

    # Exempt /metrics from rate limiting
    from gateway.api.rate_limit import limiter
    metrics_view = app.view_functions.get("prometheus_metrics")
    if metrics_view is not None:
        limiter.exempt(metrics_view)

    return metrics


# =============================================================================
# JSON Structured Logging
# =============================================================================

def setup_json_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with JSON structured output.

    The SensitiveDataFilter attached in app.py still applies (it rewrites
    record.msg before formatting). The 'audit' logger keeps its own handler.
    """
    from pythonjsonlogger.json import JsonFormatter

    handler = logging.StreamHandler(sys.stderr)
    formatter = JsonFormatter(
        fmt="%(timestamp)s %(name)s %(levelname)s %(message)s",
        rename_fields={"levelname": "level", "asctime": "timestamp"},
        timestamp=True,
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


# =============================================================================
# Instance Metrics Collection
# =============================================================================

def collect_instance_metrics() -> None:
    """
    Refresh the instance gauge from the registry.

    Statuses with no instances are reported as 0 so stale series drop.
    """
    from gateway.domain.registry import InstanceStore

    counts = InstanceStore.count_by_status()
    for status in InstanceStatus:
        INSTANCES.labels(status=status.value).set(counts.get(status.value, 0))
