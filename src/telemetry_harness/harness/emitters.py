"""
Demo emitters and observers.

Each function registers its instruments under ``prefix`` and shows one way
of reporting values:

1. counter: non-decreasing numbers, e.g. number of requests
2. up_down_counter: numbers that go up and down, e.g. active customers
3. histogram: distribution of individual values, e.g. request timings
4. counter_observer / up_down_counter_observer / gauge_observer: values
   pulled by the collector instead of pushed by the application
5. counter_with_labels: hits and misses partitioned by a label
6. counter_observer_advanced: observers reading shared sampled state
"""

import random
import threading
import time
from typing import List, Optional

from ..config.settings import TelemetrySettings
from ..monitoring.metrics import InstrumentRegistry, ObserverRegistration
from ..monitoring.state import SampledState
from .tasks import RepeatingTask


def counter(registry: InstrumentRegistry, prefix: str, interval: float = 0.001,
            iterations: Optional[int] = None) -> RepeatingTask:
    """Count one event per tick."""
    request_count = registry.counter(f"{prefix}.counter", unit="1", description="Number of requests")

    return RepeatingTask("counter", lambda: request_count.add(1), interval, iterations)


def up_down_counter(registry: InstrumentRegistry, prefix: str, rng: random.Random,
                    interval: float = 1.0, iterations: Optional[int] = None) -> RepeatingTask:
    """Randomly add or remove one customer every interval."""
    customers = registry.up_down_counter(
        f"{prefix}.up_down_counter", unit="1", description="Number of active customers"
    )

    def step():
        customers.add(+1 if rng.random() >= 0.5 else -1)

    return RepeatingTask("up_down_counter", step, interval, iterations)


def histogram(registry: InstrumentRegistry, prefix: str, rng: random.Random,
              interval: float = 0.001, iterations: Optional[int] = None) -> RepeatingTask:
    """
    Record request durations.

    The histogram gives the total number of records, average, min and max
    values and the bucketed distribution.
    """
    durations = registry.histogram(
        f"{prefix}.histogram", unit="microseconds", description="Request duration"
    )

    def step():
        durations.record(int(rng.normalvariate(0, 1) * 5_000_000))

    return RepeatingTask("histogram", step, interval, iterations)


def counter_observer(registry: InstrumentRegistry, prefix: str) -> ObserverRegistration:
    """Report consumed CPU time, a monotonic value read on demand."""
    cpu_time = registry.observable_counter(
        f"{prefix}.counter_observer", unit="s", description="CPU time consumed by the process"
    )

    return registry.register_observer([cpu_time], lambda: {cpu_time: time.process_time()})


def up_down_counter_observer(registry: InstrumentRegistry, prefix: str) -> ObserverRegistration:
    """Report the number of live threads."""
    threads = registry.observable_up_down_counter(
        f"{prefix}.up_down_counter_observer", unit="1", description="Number of live threads"
    )

    return registry.register_observer([threads], lambda: {threads: threading.active_count()})


def gauge_observer(registry: InstrumentRegistry, prefix: str,
                   rng: random.Random) -> ObserverRegistration:
    """Report a non-additive value such as a cache hit rate."""
    hit_rate = registry.observable_gauge(
        f"{prefix}.gauge_observer", unit="1", description="Cache hit rate"
    )

    return registry.register_observer([hit_rate], lambda: {hit_rate: rng.random()})


def counter_with_labels(registry: InstrumentRegistry, prefix: str, rng: random.Random,
                        interval: float = 0.001, iterations: Optional[int] = None) -> RepeatingTask:
    """
    Count cache lookups labelled ``type=hits`` or ``type=misses``.

    One counter yields hits, misses, their sum and the hit rate.
    """
    lookups = registry.counter(f"{prefix}.cache", description="Cache hits and misses")

    def step():
        if rng.random() < 0.3:
            lookups.add(1, {"type": "hits"})
        else:
            lookups.add(1, {"type": "misses"})

    return RepeatingTask("counter_with_labels", step, interval, iterations)


def counter_observer_advanced(registry: InstrumentRegistry, prefix: str, stats: SampledState,
                              rng: random.Random, interval: float = 0.001,
                              iterations: Optional[int] = None) -> RepeatingTask:
    """
    Observe hits and misses kept in shared state by another component.

    One callback reports both counters; a repeating task stands in for the
    library updating the stats.
    """
    hits = registry.observable_counter(f"{prefix}.cache_hits")
    misses = registry.observable_counter(f"{prefix}.cache_misses")

    registry.register_observer(
        [hits, misses],
        lambda: {hits: stats.load("hits"), misses: stats.load("misses")}
    )

    def step():
        if rng.random() < 0.3:
            stats.increment("misses")
        else:
            stats.increment("hits")

    return RepeatingTask("counter_observer_advanced", step, interval, iterations)


def install_demo_emitters(registry: InstrumentRegistry, settings: TelemetrySettings,
                          rng: Optional[random.Random] = None,
                          stats: Optional[SampledState] = None) -> List[RepeatingTask]:
    """
    Register every demo instrument and return the tasks to start.

    Observers are registered immediately; their values are pulled by the
    collector.
    """
    rng = rng or random.Random()
    stats = stats or SampledState(["hits", "misses"])
    prefix = settings.metric_prefix
    interval = settings.emit_interval

    tasks = [
        counter(registry, prefix, interval),
        up_down_counter(registry, prefix, rng),
        histogram(registry, prefix, rng, interval),
        counter_with_labels(registry, prefix, rng, interval),
        counter_observer_advanced(registry, prefix, stats, rng, interval),
    ]

    counter_observer(registry, prefix)
    up_down_counter_observer(registry, prefix)
    gauge_observer(registry, prefix, rng)

    return tasks


__all__ = [
    "counter",
    "up_down_counter",
    "histogram",
    "counter_observer",
    "up_down_counter_observer",
    "gauge_observer",
    "counter_with_labels",
    "counter_observer_advanced",
    "install_demo_emitters",
]
