"""Unit tests for structured logging and metrics helpers"""

import json
import logging
import pytest
from prometheus_client import REGISTRY
from finance_engine.config import settings
from finance_engine.infrastructure.observability.logging import CustomJsonFormatter, setup_logging
from finance_engine.infrastructure.observability.metrics import record_anomalies, record_calculation


@pytest.fixture
def root_logger():
    logger = logging.getLogger()
    handlers, level = logger.handlers[:], logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("finance_engine", logging.INFO, __file__, 1, message, None, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_adds_service_metadata():
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

    payload = json.loads(formatter.format(_record("Calculation completed", engine="health", request_id="req-1")))

    assert payload["message"] == "Calculation completed"
    assert payload["level"] == "INFO"
    assert payload["service"] == settings.service_name
    assert payload["engine"] == "health"
    assert payload["request_id"] == "req-1"
    assert payload["timestamp"]


def test_setup_logging_installs_single_json_handler(root_logger):
    root_logger.addHandler(logging.NullHandler())

    setup_logging("DEBUG")

    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, CustomJsonFormatter)


def test_setup_logging_defaults_to_configured_level(root_logger, monkeypatch):
    monkeypatch.setattr(settings, "log_level", "WARNING")

    setup_logging()

    assert root_logger.level == logging.WARNING


def test_record_calculation_observes_latency():
    labels = {"engine": "observability_test"}
    count_before = REGISTRY.get_sample_value("finance_engine_calculation_duration_seconds_count", labels) or 0.0

    record_calculation("observability_test", "success", 0.002)

    assert REGISTRY.get_sample_value("finance_engine_calculation_duration_seconds_count", labels) == count_before + 1
    assert REGISTRY.get_sample_value(
        "finance_engine_calculations_total", {"engine": "observability_test", "outcome": "success"}
    ) >= 1


def test_record_anomalies_counts_each_severity():
    before = REGISTRY.get_sample_value("finance_engine_expense_anomalies_total", {"severity": "MEDIUM"}) or 0.0

    record_anomalies(["MEDIUM", "MEDIUM"])

    assert REGISTRY.get_sample_value("finance_engine_expense_anomalies_total", {"severity": "MEDIUM"}) == before + 2
