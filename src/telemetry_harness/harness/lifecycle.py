"""
Process lifecycle for the telemetry pipeline.

Builds the provider (registry, exporter, collector), runs emitter tasks
until SIGINT/SIGTERM/SIGQUIT, and guarantees a final collection and flush
before the process exits.
"""

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional

from ..config.settings import TelemetrySettings
from ..monitoring.collector import PeriodicCollector
from ..monitoring.exporters import HttpExporter, MetricsExporter
from ..monitoring.metrics import InstrumentRegistry
from ..runtime.errors import ExportFailure
from .tasks import RepeatingTask


logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = tuple(
    sig for sig in (
        getattr(signal, "SIGINT", None),
        getattr(signal, "SIGTERM", None),
        getattr(signal, "SIGQUIT", None),
    )
    if sig is not None
)


class TelemetryProvider:
    """Owns the registry, exporter and collector for the process lifetime."""

    def __init__(self, settings: TelemetrySettings, exporter: MetricsExporter):
        """
        Initialize telemetry provider.

        Args:
            settings: Telemetry settings
            exporter: Exporter receiving every measurement
        """
        self.settings = settings
        self.exporter = exporter
        self.registry = InstrumentRegistry(exporter)
        self.collector = PeriodicCollector(
            self.registry,
            exporter,
            interval=settings.export_interval,
            export_timeout=settings.export_timeout
        )
        self._shut_down = False

    async def start(self) -> None:
        await self.collector.start()

    async def force_flush(self) -> bool:
        """Collect observers and flush the exporter now."""
        return await self.collector.collect_once()

    async def shutdown(self) -> None:
        """Stop collecting, flush buffered data and release the exporter."""
        if self._shut_down:
            return
        self._shut_down = True

        if self.collector.running:
            await self.collector.stop(final_collection=True)
        else:
            await self.collector.collect_once()

        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(None, self.exporter.shutdown, self.settings.export_timeout),
                timeout=self.settings.export_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Exporter shutdown timed out after {self.settings.export_timeout}s")
        except ExportFailure as e:
            logger.warning(f"Exporter shutdown failed: {e}")

        logger.info("Telemetry shut down")


def configure_telemetry(settings: TelemetrySettings,
                        exporter: Optional[MetricsExporter] = None) -> TelemetryProvider:
    """
    Configure the telemetry pipeline.

    Args:
        settings: Telemetry settings
        exporter: Exporter to use (defaults to an HTTP exporter for the DSN)

    Raises:
        ConfigurationError: If no exporter is given and the DSN is missing
    """
    if exporter is None:
        dsn = settings.require_dsn()
        exporter = HttpExporter(
            dsn,
            resource=settings.resource,
            timeout=settings.export_timeout,
            max_series=settings.max_series
        )
        logger.info(f"Reporting metrics to {dsn.base_url} as {settings.service_name}")

    return TelemetryProvider(settings, exporter)


@asynccontextmanager
async def telemetry_session(settings: TelemetrySettings,
                            exporter: Optional[MetricsExporter] = None) -> AsyncIterator[TelemetryProvider]:
    """
    Run a telemetry provider for the duration of the block.

    Buffered data is flushed on exit, including when the block raises.
    """
    provider = configure_telemetry(settings, exporter)
    await provider.start()
    try:
        yield provider
    finally:
        await provider.shutdown()


async def wait_for_shutdown_signal(stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Wait until a shutdown signal arrives or ``stop_event`` is set.

    Args:
        stop_event: Event that also ends the wait (created if omitted)
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: List[int] = []

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, signal_handler)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Cannot install handler for {sig!r} on this platform")

    try:
        await stop_event.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def run_until_signal(provider: TelemetryProvider, tasks: Iterable[RepeatingTask],
                           stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Run emitter tasks until shutdown is requested, then stop them.

    The provider itself is flushed by its session.
    """
    tasks = list(tasks)
    for task in tasks:
        task.start()

    logger.info(f"Reporting measurements from {len(tasks)} emitters (press Ctrl+C to stop)")
    try:
        await wait_for_shutdown_signal(stop_event)
    finally:
        await asyncio.gather(*(task.stop() for task in tasks))
        logger.info(f"Stopped {len(tasks)} emitters, {provider.registry.dropped} measurements dropped")


__all__ = [
    "SHUTDOWN_SIGNALS",
    "TelemetryProvider",
    "configure_telemetry",
    "telemetry_session",
    "wait_for_shutdown_signal",
    "run_until_signal",
]
