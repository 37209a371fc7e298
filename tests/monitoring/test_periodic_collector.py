"""
Test the periodic collector.
"""

import asyncio
import time

import pytest

from telemetry_harness.monitoring.collector import PeriodicCollector
from telemetry_harness.monitoring.exporters import InMemoryExporter
from telemetry_harness.monitoring.metrics import InstrumentRegistry

from helpers.fakes import FailingExporter


class SlowExporter(InMemoryExporter):
    """Exporter whose flush blocks longer than the collector allows."""

    def flush(self, timeout=None):
        time.sleep(0.2)
        return super().flush(timeout)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_collect_once_exports_observations(registry, exporter):
    gauge = registry.observable_gauge("hit_rate")
    registry.register_observer([gauge], lambda: {gauge: 0.25})
    collector = PeriodicCollector(registry, exporter, interval=60)

    assert await collector.collect_once() is True

    assert [m.value for m in exporter.measurements_for("hit_rate")] == [0.25]
    assert exporter.flush_count == 1
    assert collector.collections == 1
    assert collector.last_collection is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_collect_once_counts_export_failures():
    exporter = FailingExporter()
    registry = InstrumentRegistry(exporter)
    collector = PeriodicCollector(registry, exporter, interval=60)

    assert await collector.collect_once() is False
    assert collector.failures == 1
    assert exporter.flush_calls == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_collect_once_times_out_slow_flush():
    exporter = SlowExporter()
    registry = InstrumentRegistry(exporter)
    collector = PeriodicCollector(registry, exporter, interval=60, export_timeout=0.05)

    assert await collector.collect_once() is False
    assert collector.failures == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_collector_runs_periodically(registry, exporter):
    calls = []
    gauge = registry.observable_gauge("hit_rate")

    def observe():
        calls.append(time.monotonic())
        return {gauge: float(len(calls))}

    registry.register_observer([gauge], observe)
    collector = PeriodicCollector(registry, exporter, interval=0.01)

    await collector.start()
    assert collector.running
    await asyncio.sleep(0.1)
    await collector.stop(final_collection=False)

    assert not collector.running
    assert collector.task is None
    assert len(calls) >= 2
    assert collector.collections >= len(calls) - 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_runs_final_collection(registry, exporter):
    collector = PeriodicCollector(registry, exporter, interval=60)

    await collector.start()
    await collector.start()
    await collector.stop()

    assert exporter.flush_count == 1
    assert collector.collections == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_when_not_running_is_noop(registry, exporter):
    collector = PeriodicCollector(registry, exporter)

    await collector.stop()

    assert exporter.flush_count == 0
