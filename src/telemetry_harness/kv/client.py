"""
Key-value client.

Thin wrapper around a Redis client with plain commands and pipelined
batches. Every Redis error surfaces as ``KeyValueError``; a batch surfaces
only the first failing command.
"""

from __future__ import annotations
import logging
import math
from datetime import timedelta
from typing import Any, Callable, List, Optional, Union

import redis
from redis.exceptions import RedisError

from ..config.settings import KeyValueSettings
from ..runtime.errors import KeyValueError


logger = logging.getLogger(__name__)

Ttl = Union[int, float, timedelta, None]


def _expiry(ttl: Ttl) -> Optional[int]:
    """
    Convert a TTL to Redis ``ex`` seconds; None or zero means no expiry.

    Fractional seconds round up to the next whole second.
    """
    if ttl is None:
        return None
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else ttl
    if seconds < 0:
        raise ValueError("ttl must be >= 0")
    return math.ceil(seconds) or None


class Batch:
    """
    Commands queued for a single round trip.

    Created by ``KeyValueClient.pipelined``; commands are sent when the
    callback returns.
    """

    def __init__(self, pipeline):
        self._pipeline = pipeline
        self.commands: List[str] = []

    def set(self, key: str, value: Any, ttl: Ttl = None) -> Batch:
        self._pipeline.set(key, value, ex=_expiry(ttl))
        self.commands.append("set")
        return self

    def get(self, key: str) -> Batch:
        self._pipeline.get(key)
        self.commands.append("get")
        return self

    def __len__(self) -> int:
        return len(self.commands)


class KeyValueClient:
    """
    Key-value client backed by Redis.

    Example:
        ```python
        with KeyValueClient.from_url("redis://localhost:6379/0") as kv:
            kv.set("foo", "bar")
            kv.get("foo")
            kv.pipelined(lambda batch: batch.set("foo", "bar2").get("foo"))
        ```
    """

    def __init__(self, client: redis.Redis, owns_client: bool = False):
        """
        Initialize the client.

        Args:
            client: Redis client (or a compatible object)
            owns_client: Close ``client`` when this wrapper is closed
        """
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 5.0) -> KeyValueClient:
        """Connect to the server at ``url``."""
        client = redis.Redis.from_url(url, decode_responses=True, socket_timeout=socket_timeout)
        return cls(client, owns_client=True)

    @classmethod
    def from_settings(cls, settings: KeyValueSettings) -> KeyValueClient:
        return cls.from_url(settings.url, settings.socket_timeout)

    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """
        Store ``value`` under ``key``.

        Args:
            key: Key
            value: Value
            ttl: Seconds (or timedelta) until expiry; None or 0 keeps the key forever

        Raises:
            KeyValueError: If the command failed
        """
        try:
            return bool(self._client.set(key, value, ex=_expiry(ttl)))
        except RedisError as e:
            raise KeyValueError(f"SET {key} failed", command="set", cause=e)

    def get(self, key: str) -> Optional[Any]:
        """
        Read the value under ``key``.

        Returns:
            The value, or None if the key does not exist

        Raises:
            KeyValueError: If the command failed
        """
        try:
            return self._client.get(key)
        except RedisError as e:
            raise KeyValueError(f"GET {key} failed", command="get", cause=e)

    def pipelined(self, fn: Callable[[Batch], Any]) -> List[Any]:
        """
        Queue commands with ``fn`` and send them in one MULTI/EXEC round trip.

        If ``fn`` raises, nothing is sent. If a command fails, only the
        first failure is raised and the remaining results are discarded.

        Returns:
            Results in command order

        Raises:
            KeyValueError: Wrapping the first failing command's error
        """
        with self._client.pipeline(transaction=True) as pipeline:
            batch = Batch(pipeline)
            fn(batch)
            if not batch.commands:
                return []

            try:
                return pipeline.execute(raise_on_error=True)
            except RedisError as e:
                logger.debug(f"Pipeline of {len(batch)} commands failed: {e}")
                raise KeyValueError(
                    f"Pipeline failed: {e}",
                    command="pipeline",
                    details={"commands": list(batch.commands)},
                    cause=e
                )

    def close(self) -> None:
        """Close the connection pool if owned by this client."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> KeyValueClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def run_kv_commands(client: KeyValueClient) -> List[Any]:
    """
    Run the demo command sequence.

    ``set foo bar``, ``get foo``, then a pipelined ``set foo bar2`` and
    ``get foo``.

    Returns:
        Results of the pipelined batch
    """
    client.set("foo", "bar")
    client.get("foo")
    return client.pipelined(lambda batch: batch.set("foo", "bar2").get("foo"))


__all__ = ["Batch", "KeyValueClient", "run_kv_commands"]
