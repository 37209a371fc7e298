"""
Harness configuration.

Typed settings for the telemetry pipeline and the key-value client, loaded
from the process environment.
"""

from __future__ import annotations
import os
from typing import Optional, Mapping, Dict, Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..runtime.errors import ConfigurationError, ErrorCode


DSN_ENV = "TELEMETRY_DSN"
KV_URL_ENV = "KV_URL"

_ENV_FIELDS = {
    "TELEMETRY_SERVICE_NAME": "service_name",
    "TELEMETRY_SERVICE_VERSION": "service_version",
    "TELEMETRY_METRIC_PREFIX": "metric_prefix",
    "TELEMETRY_EXPORT_INTERVAL": "export_interval",
    "TELEMETRY_EXPORT_TIMEOUT": "export_timeout",
    "TELEMETRY_EMIT_INTERVAL": "emit_interval",
}


class Dsn(BaseModel):
    """
    Parsed exporter connection string.

    Format: ``scheme://<token>@<host>[:port]/<project_id>``
    """
    scheme: str
    token: str
    host: str
    port: Optional[int] = None
    project_id: str

    @property
    def base_url(self) -> str:
        """Scheme, host and port of the backend."""
        netloc = self.host if self.port is None else f"{self.host}:{self.port}"
        return f"{self.scheme}://{netloc}"

    @property
    def endpoint(self) -> str:
        """Metrics ingestion URL."""
        return f"{self.base_url}/api/v1/metrics/{self.project_id}"

    @classmethod
    def parse(cls, dsn: str) -> Dsn:
        """
        Parse a DSN string.

        Raises:
            ConfigurationError: If the DSN is malformed
        """
        parsed = urlparse(dsn.strip())

        if parsed.scheme not in ("http", "https"):
            raise ConfigurationError(
                f"DSN scheme must be http or https, got {parsed.scheme!r}",
                ErrorCode.INVALID_DSN
            )
        if not parsed.hostname:
            raise ConfigurationError("DSN has no host", ErrorCode.INVALID_DSN)
        if not parsed.username:
            raise ConfigurationError("DSN has no token", ErrorCode.INVALID_DSN)

        project_id = parsed.path.strip("/")
        if not project_id:
            raise ConfigurationError("DSN has no project id", ErrorCode.INVALID_DSN)

        try:
            port = parsed.port
        except ValueError as e:
            raise ConfigurationError("DSN has an invalid port", ErrorCode.INVALID_DSN, cause=e)

        return cls(
            scheme=parsed.scheme,
            token=parsed.username,
            host=parsed.hostname,
            port=port,
            project_id=project_id,
        )


class TelemetrySettings(BaseModel):
    """Settings for the metrics pipeline and the demo emitters."""
    dsn: Optional[str] = Field(default=None, description="Exporter connection string")
    service_name: str = Field(default="myservice", min_length=1)
    service_version: str = Field(default="1.0.0", min_length=1)
    metric_prefix: str = Field(default="some.prefix", min_length=1)
    export_interval: float = Field(default=15.0, gt=0, description="Seconds between collections")
    export_timeout: float = Field(default=5.0, gt=0, description="Seconds allowed for a flush")
    emit_interval: float = Field(default=0.01, gt=0, description="Seconds between demo emissions")
    max_series: int = Field(default=10000, ge=1, description="Series buffered between flushes")

    @field_validator("dsn")
    @classmethod
    def _blank_dsn_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TelemetrySettings:
        """
        Load settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {"dsn": env.get(DSN_ENV)}
        for var, field_name in _ENV_FIELDS.items():
            if env.get(var):
                values[field_name] = env[var]

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError("Invalid telemetry settings", cause=e)

    def require_dsn(self) -> Dsn:
        """
        Return the parsed DSN.

        Raises:
            ConfigurationError: If no DSN is configured or it is malformed
        """
        if not self.dsn:
            raise ConfigurationError(f"{DSN_ENV} is empty or missing")
        return Dsn.parse(self.dsn)

    @property
    def resource(self) -> Dict[str, str]:
        """Resource attributes attached to every export."""
        return {
            "service.name": self.service_name,
            "service.version": self.service_version,
        }


class KeyValueSettings(BaseModel):
    """Settings for the key-value client."""
    url: str = Field(default="redis://localhost:6379/0")
    socket_timeout: float = Field(default=5.0, gt=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> KeyValueSettings:
        """Load settings from environment variables."""
        env = os.environ if environ is None else environ
        if env.get(KV_URL_ENV):
            return cls(url=env[KV_URL_ENV])
        return cls()
