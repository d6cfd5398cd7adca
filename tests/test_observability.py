"""
Tests for the observability module (Prometheus metrics + JSON logging).
"""

import json
import logging

import pytest
from prometheus_client import REGISTRY


# ---------------------------------------------------------------------------
# Metrics endpoint
# ---------------------------------------------------------------------------

class TestMetricsEndpoint:
    """Tests for the /metrics Prometheus endpoint."""

    def test_metrics_endpoint_accessible(self, app_client):
        """GET /metrics returns 200 with Prometheus text content."""
        resp = app_client.get("/metrics")
        assert resp.status_code == 200
        body = resp.data.decode()
        assert "# HELP" in body or "# TYPE" in body

    def test_metrics_no_auth_required(self, app_client):
        resp = app_client.get("/metrics", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Instance metrics
# ---------------------------------------------------------------------------

class TestInstanceMetrics:

    def test_histograms_registered(self):
        import gateway.observability  # noqa: F401

        names = {m.name for m in REGISTRY.collect()}
        assert "gateway_provisioning_duration_seconds" in names
        assert "gateway_migration_duration_seconds" in names

    def test_error_counter_increments(self):
        from gateway.observability import ERRORS_TOTAL

        before = ERRORS_TOTAL.labels(endpoint="test")._value.get()
        ERRORS_TOTAL.labels(endpoint="test").inc()
        assert ERRORS_TOTAL.labels(endpoint="test")._value.get() == before + 1

    def test_collect_instance_metrics(self, mocker):
        from gateway.domain.registry import InstanceStore
        from gateway.observability import INSTANCES, collect_instance_metrics

        mocker.patch.object(InstanceStore, "count_by_status", return_value={"running": 3, "error": 1})
        collect_instance_metrics()

        assert INSTANCES.labels(status="running")._value.get() == 3.0
        assert INSTANCES.labels(status="error")._value.get() == 1.0
        # Statuses without instances are reported explicitly
        assert INSTANCES.labels(status="migrating")._value.get() == 0.0

    def test_monitor_run_once_survives_db_error(self, mocker, caplog):
        from gateway.services.monitor import StatusMonitor

        mocker.patch(
            "gateway.services.monitor.collect_instance_metrics",
            side_effect=RuntimeError("pool not initialized"),
        )
        with caplog.at_level(logging.ERROR, logger="whatsapp-gateway"):
            StatusMonitor(interval=1).run_once()
        assert "pool not initialized" in caplog.text

    def test_monitor_stop(self):
        from gateway.services.monitor import StatusMonitor

        monitor = StatusMonitor(interval=60)
        monitor.stop()
        assert monitor.running is False


# ---------------------------------------------------------------------------
# JSON logging
# ---------------------------------------------------------------------------

class TestJsonLogging:
    """Tests for structured JSON logging setup."""

    def test_json_logging_format(self, capfd):
        """After setup_json_logging, log output is valid JSON."""
        from gateway.observability import setup_json_logging
        setup_json_logging(level="DEBUG")

        test_logger = logging.getLogger("test.json_format")
        test_logger.info("hello structured world")

        captured = capfd.readouterr()
        for line in captured.err.strip().splitlines():
            if "hello structured world" in line:
                parsed = json.loads(line)
                assert parsed["message"] == "hello structured world"
                assert "timestamp" in parsed
                assert parsed["level"] == "INFO"
                break
        else:
            pytest.fail("JSON log line with expected message not found in stderr")

    def test_sensitive_data_masked(self, app_client):
        from gateway.app import SensitiveDataFilter

        record = logging.LogRecord(
            "whatsapp-gateway", logging.INFO, __file__, 1,
            "connecting to postgresql://user:hunter2@db/wa with api_key=abc123", None, None,
        )
        SensitiveDataFilter().filter(record)
        assert "hunter2" not in record.msg
        assert "abc123" not in record.msg
