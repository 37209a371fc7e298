"""Configuration for the telemetry harness."""

from .settings import Dsn, TelemetrySettings, KeyValueSettings, DSN_ENV, KV_URL_ENV

__all__ = ["Dsn", "TelemetrySettings", "KeyValueSettings", "DSN_ENV", "KV_URL_ENV"]
