"""
Test bootstrap:
- Make tests/helpers importable
- Provide registry, exporter and settings fixtures
"""
import pathlib
import sys

import pytest

TESTS_DIR = pathlib.Path(__file__).parent

if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))


@pytest.fixture
def exporter():
    """Provide an in-memory exporter."""
    from telemetry_harness.monitoring.exporters import InMemoryExporter
    return InMemoryExporter()


@pytest.fixture
def registry(exporter):
    """Provide an instrument registry wired to the in-memory exporter."""
    from telemetry_harness.monitoring.metrics import InstrumentRegistry
    return InstrumentRegistry(exporter)


@pytest.fixture
def settings():
    """Provide fast settings with a test DSN."""
    from telemetry_harness.config.settings import TelemetrySettings
    return TelemetrySettings(
        dsn="https://secret@telemetry.example.com/42",
        export_interval=0.01,
        export_timeout=1.0,
        emit_interval=0.001,
    )


@pytest.fixture
def fake_redis():
    """Provide an in-memory stand-in for a Redis client."""
    from helpers.fakes import FakeRedis
    return FakeRedis()
