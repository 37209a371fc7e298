"""
Test shared state read by observer callbacks.
"""

import threading

import pytest

from telemetry_harness.monitoring.state import AtomicCounter, SampledState


@pytest.mark.unit
def test_atomic_counter_add_returns_new_value():
    counter = AtomicCounter(5)

    assert counter.add(3) == 8
    assert counter.add(-10) == -2
    assert counter.load() == -2
    assert repr(counter) == "AtomicCounter(-2)"


@pytest.mark.unit
def test_concurrent_updates_are_not_lost():
    state = SampledState(["hits", "misses"])
    workers = 8
    per_worker = 1000

    def work(index):
        for i in range(per_worker):
            if (index + i) % 3 == 0:
                state.increment("misses")
            else:
                state.increment("hits")

    threads = [threading.Thread(target=work, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = state.snapshot()
    assert snapshot["hits"] + snapshot["misses"] == workers * per_worker


@pytest.mark.unit
def test_signed_deltas_sum_to_zero():
    state = SampledState(["customers"])

    threads = [
        threading.Thread(target=lambda: [state.increment("customers") for _ in range(500)]),
        threading.Thread(target=lambda: [state.decrement("customers") for _ in range(500)]),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert state.load("customers") == 0


@pytest.mark.unit
def test_unknown_name_raises_key_error():
    state = SampledState(["hits"])

    with pytest.raises(KeyError):
        state.load("misses")
    with pytest.raises(KeyError):
        state.increment("misses")


@pytest.mark.unit
def test_empty_state_rejected():
    with pytest.raises(ValueError):
        SampledState([])


@pytest.mark.unit
def test_observer_reads_current_state(registry):
    state = SampledState(["hits", "misses"])
    hits = registry.observable_counter("cache_hits")
    misses = registry.observable_counter("cache_misses")
    registry.register_observer([hits, misses], lambda: {
        hits: state.load("hits"),
        misses: state.load("misses"),
    })

    state.increment("hits", 4)
    state.increment("misses")
    first = {m.instrument.name: m.value for m in registry.collect_observations()}
    state.increment("hits")
    second = {m.instrument.name: m.value for m in registry.collect_observations()}

    assert first == {"cache_hits": 4, "cache_misses": 1}
    assert second == {"cache_hits": 5, "cache_misses": 1}
    assert state.names == ["hits", "misses"]
