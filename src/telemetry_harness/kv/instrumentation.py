"""
Instrumentation for the key-value client.

Wraps client commands so every call records a command counter, an error
counter and a duration histogram in an instrument registry.
"""

import functools
import time
from typing import Callable

from ..monitoring.metrics import InstrumentRegistry
from .client import KeyValueClient


class KeyValueInstrumentation:
    """Instrumentation wrapper for KeyValueClient."""

    methods_to_instrument = ("set", "get", "pipelined")

    def __init__(self, client: KeyValueClient, registry: InstrumentRegistry, prefix: str = "kv"):
        """
        Initialize client instrumentation.

        Args:
            client: KeyValueClient instance
            registry: Registry receiving the measurements
            prefix: Instrument name prefix
        """
        self.client = client
        self.registry = registry
        self.prefix = prefix

        self.command_counter = registry.counter(
            f"{prefix}.commands", unit="1", description="Key-value commands executed"
        )
        self.error_counter = registry.counter(
            f"{prefix}.errors", unit="1", description="Key-value commands that failed"
        )
        self.duration = registry.histogram(
            f"{prefix}.duration", unit="ms", description="Key-value command duration"
        )

        self._instrument_methods()

    def _instrument_methods(self):
        """Instrument client methods."""
        for method_name in self.methods_to_instrument:
            original_method = getattr(self.client, method_name)
            instrumented_method = self._create_instrumented_method(original_method, method_name)
            setattr(self.client, method_name, instrumented_method)

    def _create_instrumented_method(self, original_method: Callable, method_name: str) -> Callable:
        """Create instrumented version of a method."""
        @functools.wraps(original_method)
        def instrumented(*args, **kwargs):
            labels = {"command": method_name}
            start_time = time.perf_counter()

            try:
                result = original_method(*args, **kwargs)
            except Exception as e:
                error_labels = labels.copy()
                error_labels["error_type"] = type(e).__name__
                self.error_counter.add(1, error_labels)
                self.command_counter.add(1, {**labels, "status": "error"})
                raise
            else:
                self.command_counter.add(1, {**labels, "status": "success"})
                return result
            finally:
                self.duration.record((time.perf_counter() - start_time) * 1000, labels)

        return instrumented


def instrument_kv_client(client: KeyValueClient, registry: InstrumentRegistry,
                         prefix: str = "kv") -> KeyValueInstrumentation:
    """
    Instrument a KeyValueClient with automatic metrics.

    Args:
        client: KeyValueClient instance
        registry: Registry receiving the measurements
        prefix: Instrument name prefix

    Returns:
        KeyValueInstrumentation instance
    """
    return KeyValueInstrumentation(client, registry, prefix)


__all__ = ["KeyValueInstrumentation", "instrument_kv_client"]
