"""Tests for INF-02 structured logging and the metrics facade."""

# Coverage: INF-02

from __future__ import annotations

import io
import json
import logging

import pytest

from backend.app.infra.logging import (
    ROOT_LOGGER_NAME,
    JsonLogFormatter,
    configure_logging,
    get_logger,
)
from backend.app.infra.metrics import InMemoryMetricsClient, get_metrics_client

pytestmark = [pytest.mark.inf02]


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(root.handlers)
    level = root.level
    propagate = root.propagate
    yield root
    root.handlers = handlers
    root.setLevel(level)
    root.propagate = propagate


def test_get_logger_nests_under_root():
    assert get_logger("backend.app.domain").name == "runlog.backend.app.domain"
    assert get_logger("runlog.api").name == "runlog.api"


def test_json_formatter_lifts_extra_fields():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonLogFormatter(environment="test"))
    logger = logging.getLogger("runlog.tests.formatter")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        logger.info("run_entry_added", extra={"entry_id": "abc", "entry_date": "2024-06-20"})
    finally:
        logger.removeHandler(handler)

    payload = json.loads(stream.getvalue())
    assert payload["event"] == "run_entry_added"
    assert payload["severity"] == "INFO"
    assert payload["env"] == "test"
    assert payload["entry_id"] == "abc"
    assert payload["entry_date"] == "2024-06-20"
    assert "msg" not in payload


def test_configure_logging_installs_single_handler(restore_root_logger):
    configure_logging({"level": "debug"}, environment="test")
    root = configure_logging({"level": "warning", "json": False}, environment="test")

    installed = [h for h in root.handlers if getattr(h, "_runlog_handler", False)]
    assert len(installed) == 1
    assert root.level == logging.WARNING
    assert not isinstance(installed[0].formatter, JsonLogFormatter)


def test_in_memory_metrics_snapshot():
    metrics = InMemoryMetricsClient()

    metrics.increment("runs_list_http_total")
    metrics.increment("runs_list_http_total", 2)
    metrics.gauge("runlog_entries", 4)

    assert metrics.snapshot() == {
        "counters": {"runs_list_http_total": 3},
        "gauges": {"runlog_entries": 4},
    }


def test_get_metrics_client_is_shared():
    assert get_metrics_client() is get_metrics_client()
