"""
Test doubles for external collaborators.

FakeRedis mimics the parts of ``redis.Redis`` used by KeyValueClient,
including MULTI/EXEC pipelines where a queue-time error aborts the whole
transaction and the first error is raised.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

from redis.exceptions import RedisError

from telemetry_harness.monitoring.exporters import MetricsExporter
from telemetry_harness.runtime.errors import ExportFailure


class FakeRedis:
    """Dictionary-backed Redis client."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.expiry: Dict[str, Any] = {}
        self.failures: Dict[str, RedisError] = {}
        self.executed: List[tuple] = []
        self.closed = False

    def fail(self, command: str, error: RedisError) -> None:
        """Make every ``command`` call raise ``error``."""
        self.failures[command] = error

    def _check(self, command: str) -> None:
        if command in self.failures:
            raise self.failures[command]

    def set(self, key, value, ex=None):
        self._check("set")
        self.executed.append(("set", key, value))
        self.data[key] = str(value)
        self.expiry[key] = ex
        return True

    def get(self, key):
        self._check("get")
        self.executed.append(("get", key))
        return self.data.get(key)

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction)

    def close(self):
        self.closed = True


class FakePipeline:
    """Queued commands executed on ``execute``."""

    def __init__(self, client: FakeRedis, transaction: bool):
        self.client = client
        self.transaction = transaction
        self.queue: List[tuple] = []

    def __enter__(self) -> FakePipeline:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.queue = []

    def set(self, key, value, ex=None):
        self.queue.append(("set", (key, value), {"ex": ex}))
        return self

    def get(self, key):
        self.queue.append(("get", (key,), {}))
        return self

    def execute(self, raise_on_error: bool = True) -> List[Any]:
        # Queue-time errors abort the transaction before anything runs.
        for command, _, _ in self.queue:
            if command in self.client.failures:
                self.queue = []
                raise self.client.failures[command]

        results = [getattr(self.client, command)(*args, **kwargs) for command, args, kwargs in self.queue]
        self.queue = []
        return results


class FailingExporter(MetricsExporter):
    """Exporter whose export and flush always fail."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or ExportFailure("backend unreachable")
        self.export_calls = 0
        self.flush_calls = 0

    def export(self, measurements: Sequence) -> None:
        self.export_calls += 1
        raise self.error

    def flush(self, timeout: Optional[float] = None) -> bool:
        self.flush_calls += 1
        raise self.error
