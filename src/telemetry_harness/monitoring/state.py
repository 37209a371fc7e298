"""
Shared sampled state.

Small sets of integer counters mutated by emitter tasks and read by
observer callbacks. Every access goes through a lock so concurrent updates
are never lost and reads never see a partial update.
"""

import threading
from typing import Dict, Iterable


class AtomicCounter:
    """Lock-guarded integer."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def add(self, delta: int) -> int:
        """Add ``delta`` and return the new value."""
        with self._lock:
            self._value += delta
            return self._value

    def load(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.load()})"


class SampledState:
    """
    Named counters shared between emitters and observers.

    The set of counter names is fixed at construction; unknown names raise
    ``KeyError``.

    Usage:
        stats = SampledState(["hits", "misses"])
        stats.increment("hits")
        stats.load("hits")
    """

    def __init__(self, names: Iterable[str]):
        self._counters: Dict[str, AtomicCounter] = {name: AtomicCounter() for name in names}
        if not self._counters:
            raise ValueError("SampledState needs at least one counter")

    @property
    def names(self):
        return list(self._counters)

    def add(self, name: str, delta: int) -> int:
        return self._counters[name].add(delta)

    def increment(self, name: str, amount: int = 1) -> int:
        return self.add(name, amount)

    def decrement(self, name: str, amount: int = 1) -> int:
        return self.add(name, -amount)

    def load(self, name: str) -> int:
        return self._counters[name].load()

    def snapshot(self) -> Dict[str, int]:
        """Current value of every counter."""
        return {name: counter.load() for name, counter in self._counters.items()}


__all__ = ["AtomicCounter", "SampledState"]
