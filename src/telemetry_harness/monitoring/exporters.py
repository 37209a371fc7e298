"""
Metrics exporters.

Exporters receive measurements forwarded by the registry and the
collector. ``flush`` must complete, or time out, before the process exits.
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..config.settings import Dsn
from ..runtime.errors import ErrorCode, ExportFailure
from .aggregation import Aggregator
from .metrics import Measurement


logger = logging.getLogger(__name__)


class MetricsExporter(ABC):
    """Abstract base class for metrics exporters."""

    @abstractmethod
    def export(self, measurements: Sequence[Measurement]) -> None:
        """
        Accept measurements for delivery.

        Args:
            measurements: Measurements tagged with their instrument
        """
        pass

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Deliver buffered data.

        Args:
            timeout: Seconds allowed for delivery

        Returns:
            True when everything buffered was delivered

        Raises:
            ExportFailure: If delivery failed
        """
        return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Flush and release resources."""
        self.flush(timeout)


class InMemoryExporter(MetricsExporter):
    """Exporter that keeps every measurement in memory."""

    def __init__(self):
        self._measurements: List[Measurement] = []
        self._aggregator = Aggregator()
        self._lock = threading.Lock()
        self.flush_count = 0
        self.shut_down = False

    def export(self, measurements: Sequence[Measurement]) -> None:
        with self._lock:
            self._measurements.extend(measurements)
        self._aggregator.add(measurements)

    def flush(self, timeout: Optional[float] = None) -> bool:
        self.flush_count += 1
        return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self.flush(timeout)
        self.shut_down = True

    @property
    def measurements(self) -> List[Measurement]:
        """Measurements received so far, in arrival order."""
        with self._lock:
            return list(self._measurements)

    def measurements_for(self, name: str) -> List[Measurement]:
        """Measurements received for one instrument."""
        return [m for m in self.measurements if m.instrument.name == name]

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Any:
        """Aggregated value of one series."""
        return self._aggregator.get_value(name, labels)

    def clear(self) -> None:
        with self._lock:
            self._measurements.clear()
        self._aggregator.reset()


class LoggingExporter(MetricsExporter):
    """Logging-based metrics exporter."""

    def __init__(self, logger_name: str = "metrics", level: int = logging.INFO):
        """
        Initialize logging exporter.

        Args:
            logger_name: Logger name to use
            level: Logging level
        """
        self.logger = logging.getLogger(logger_name)
        self.level = level

    def export(self, measurements: Sequence[Measurement]) -> None:
        for m in measurements:
            self.logger.log(
                self.level,
                f"Metric {m.instrument.name} ({m.instrument.kind.value}): {m.value} {m.labels or ''}".rstrip()
            )


class HttpExporter(MetricsExporter):
    """
    HTTP exporter posting aggregated data points to the telemetry backend.

    Measurements are folded per series between flushes; each flush sends
    one JSON document and starts a new window. A failed flush drops the
    window.
    """

    def __init__(
        self,
        dsn: Dsn,
        resource: Optional[Dict[str, str]] = None,
        timeout: float = 5.0,
        max_series: int = 10000,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize HTTP exporter.

        Args:
            dsn: Parsed connection string
            resource: Resource attributes (service name, version)
            timeout: Default request timeout in seconds
            max_series: Maximum series buffered between flushes
            session: Optional requests.Session for connection pooling
        """
        self.dsn = dsn
        self.resource = dict(resource or {})
        self.timeout = timeout
        self._aggregator = Aggregator(max_series=max_series)
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._flush_lock = threading.Lock()
        self._window_start = time.time()

    @property
    def endpoint(self) -> str:
        return self.dsn.endpoint

    @property
    def dropped_series(self) -> int:
        return self._aggregator.dropped

    def export(self, measurements: Sequence[Measurement]) -> None:
        self._aggregator.add(measurements)

    def build_payload(self, points: List[Dict[str, Any]], start: float, end: float) -> Dict[str, Any]:
        """Build the JSON document sent to the backend."""
        return {
            "resource": self.resource,
            "start_time": start,
            "end_time": end,
            "metrics": points,
        }

    def flush(self, timeout: Optional[float] = None) -> bool:
        with self._flush_lock:
            points = self._aggregator.reset()
            start, self._window_start = self._window_start, time.time()
            if not points:
                return True

            payload = self.build_payload(points, start, self._window_start)
            headers = {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.dsn.token}",
            }

            try:
                response = self._session.post(
                    self.endpoint,
                    data=json.dumps(payload, default=str),
                    headers=headers,
                    timeout=timeout or self.timeout
                )
            except requests.Timeout as e:
                raise ExportFailure(
                    f"Export to {self.endpoint} timed out", ErrorCode.EXPORT_TIMEOUT,
                    {"points": len(points)}, e
                )
            except requests.RequestException as e:
                raise ExportFailure(
                    f"Export to {self.endpoint} failed", details={"points": len(points)}, cause=e
                )

            if response.status_code >= 400:
                raise ExportFailure(
                    f"Export rejected with HTTP {response.status_code}",
                    details={"points": len(points), "body": response.text[:200]}
                )

            logger.debug(f"Exported {len(points)} data points to {self.endpoint}")
            return True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        try:
            self.flush(timeout)
        finally:
            if self._owns_session:
                self._session.close()


__all__ = [
    "MetricsExporter",
    "InMemoryExporter",
    "LoggingExporter",
    "HttpExporter",
]
