"""
Test metrics exporters.
"""

import json
import logging
from unittest.mock import Mock

import pytest
import requests

from telemetry_harness.config import Dsn
from telemetry_harness.monitoring.exporters import HttpExporter, InMemoryExporter, LoggingExporter
from telemetry_harness.monitoring.metrics import InstrumentRegistry
from telemetry_harness.runtime.errors import ErrorCode, ExportFailure


DSN = "https://secret@telemetry.example.com/42"


def _response(status_code=200, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.post.return_value = _response()
    return session


@pytest.fixture
def http_exporter(session):
    return HttpExporter(
        Dsn.parse(DSN),
        resource={"service.name": "myservice", "service.version": "1.0.0"},
        timeout=2.0,
        session=session,
    )


@pytest.mark.unit
def test_in_memory_exporter_records_and_clears():
    exporter = InMemoryExporter()
    registry = InstrumentRegistry(exporter)
    counter = registry.counter("requests")

    counter.add(2)
    counter.add(3)

    assert len(exporter.measurements_for("requests")) == 2
    assert exporter.get_value("requests") == 5
    assert exporter.flush() is True

    exporter.shutdown()
    assert exporter.flush_count == 2
    assert exporter.shut_down

    exporter.clear()
    assert exporter.measurements == []
    assert exporter.get_value("requests") is None


@pytest.mark.unit
def test_logging_exporter_logs_measurements(caplog):
    registry = InstrumentRegistry(LoggingExporter(logger_name="test.metrics"))
    counter = registry.counter("requests")

    with caplog.at_level(logging.INFO, logger="test.metrics"):
        counter.add(1, {"status": "ok"})

    assert "Metric requests (counter): 1" in caplog.text


@pytest.mark.unit
def test_http_flush_posts_aggregated_payload(http_exporter, session):
    registry = InstrumentRegistry(http_exporter)
    counter = registry.counter("requests")
    counter.add(1)
    counter.add(1)

    assert http_exporter.flush() is True

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "https://telemetry.example.com/api/v1/metrics/42"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert kwargs["timeout"] == 2.0

    payload = json.loads(kwargs["data"])
    assert payload["resource"] == {"service.name": "myservice", "service.version": "1.0.0"}
    assert payload["start_time"] <= payload["end_time"]
    assert payload["metrics"] == [{
        "name": "requests",
        "kind": "counter",
        "unit": "",
        "description": "",
        "labels": {},
        "value": 2,
    }]


@pytest.mark.unit
def test_http_flush_without_data_skips_request(http_exporter, session):
    assert http_exporter.flush() is True
    session.post.assert_not_called()


@pytest.mark.unit
def test_http_flush_starts_new_window(http_exporter, session):
    counter = InstrumentRegistry(http_exporter).counter("requests")
    counter.add(1)
    http_exporter.flush()
    http_exporter.flush()

    assert session.post.call_count == 1


@pytest.mark.unit
def test_http_flush_uses_explicit_timeout(http_exporter, session):
    InstrumentRegistry(http_exporter).counter("requests").add(1)

    http_exporter.flush(timeout=0.5)

    assert session.post.call_args.kwargs["timeout"] == 0.5


@pytest.mark.unit
def test_http_flush_timeout_raises_export_failure(http_exporter, session):
    session.post.side_effect = requests.Timeout("read timed out")
    InstrumentRegistry(http_exporter).counter("requests").add(1)

    with pytest.raises(ExportFailure) as excinfo:
        http_exporter.flush()

    assert excinfo.value.code == ErrorCode.EXPORT_TIMEOUT
    assert isinstance(excinfo.value.cause, requests.Timeout)


@pytest.mark.unit
def test_http_flush_connection_error_raises_export_failure(http_exporter, session):
    session.post.side_effect = requests.ConnectionError("refused")
    InstrumentRegistry(http_exporter).counter("requests").add(1)

    with pytest.raises(ExportFailure) as excinfo:
        http_exporter.flush()

    assert excinfo.value.code == ErrorCode.EXPORT_FAILED


@pytest.mark.unit
def test_http_flush_rejected_status_raises_export_failure(http_exporter, session):
    session.post.return_value = _response(401, "invalid token")
    InstrumentRegistry(http_exporter).counter("requests").add(1)

    with pytest.raises(ExportFailure) as excinfo:
        http_exporter.flush()

    assert "401" in excinfo.value.message
    assert excinfo.value.details["body"] == "invalid token"


@pytest.mark.unit
def test_http_exporter_caps_series(session):
    exporter = HttpExporter(Dsn.parse(DSN), max_series=1, session=session)
    counter = InstrumentRegistry(exporter).counter("requests")

    counter.add(1, {"id": "a"})
    counter.add(1, {"id": "b"})

    assert exporter.dropped_series == 1


@pytest.mark.unit
def test_http_shutdown_keeps_caller_session(http_exporter, session):
    http_exporter.shutdown()
    session.close.assert_not_called()


@pytest.mark.unit
def test_http_shutdown_closes_owned_session(monkeypatch):
    owned = Mock(spec=requests.Session)
    monkeypatch.setattr(requests, "Session", Mock(return_value=owned))

    exporter = HttpExporter(Dsn.parse(DSN))
    exporter.shutdown()

    owned.close.assert_called_once()


@pytest.mark.unit
def test_http_payload_keeps_label_sets_with_separators_apart(http_exporter, session):
    lookups = InstrumentRegistry(http_exporter).counter("cache")
    lookups.add(1, {"a": "x", "b": "y"})
    lookups.add(1, {"a": "x|b=y"})

    http_exporter.flush()

    metrics = json.loads(session.post.call_args.kwargs["data"])["metrics"]
    assert sorted((sorted(m["labels"].items()), m["value"]) for m in metrics) == [
        ([("a", "x"), ("b", "y")], 1),
        ([("a", "x|b=y")], 1),
    ]
