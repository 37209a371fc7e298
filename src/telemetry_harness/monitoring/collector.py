"""
Periodic collection of observer callbacks.

Runs registered observers on a fixed interval, forwards their values to
the exporter and flushes it. Failures are logged and the loop continues.
"""

import asyncio
import logging
import time
from typing import Optional

from ..runtime.errors import ExportFailure
from .exporters import MetricsExporter
from .metrics import InstrumentRegistry


logger = logging.getLogger(__name__)


class PeriodicCollector:
    """Background collector for observers and exporter flushes."""

    def __init__(
        self,
        registry: InstrumentRegistry,
        exporter: MetricsExporter,
        interval: float = 15.0,
        export_timeout: float = 5.0
    ):
        """
        Initialize periodic collector.

        Args:
            registry: Registry whose observers are collected
            exporter: Exporter receiving observations
            interval: Collection interval in seconds
            export_timeout: Seconds allowed for each flush
        """
        self.registry = registry
        self.exporter = exporter
        self.interval = interval
        self.export_timeout = export_timeout
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.collections = 0
        self.failures = 0
        self.last_collection: Optional[float] = None

    async def start(self):
        """Start collection."""
        if self.running:
            return

        self.running = True
        self.task = asyncio.create_task(self._collection_loop())
        logger.info(f"Started metrics collection (interval: {self.interval}s)")

    async def stop(self, final_collection: bool = True):
        """Stop collection, optionally running one last cycle."""
        if not self.running:
            return

        self.running = False

        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None

        if final_collection:
            await self.collect_once()

        logger.info("Stopped metrics collection")

    async def collect_once(self) -> bool:
        """
        Run one collection cycle.

        Returns:
            True if the observations were collected and flushed
        """
        try:
            observations = self.registry.collect_observations()
            if observations:
                self.exporter.export(observations)

            loop = asyncio.get_running_loop()
            await asyncio.wait_for(
                loop.run_in_executor(None, self.exporter.flush, self.export_timeout),
                timeout=self.export_timeout
            )
            self.collections += 1
            self.last_collection = time.time()
            return True

        except asyncio.TimeoutError:
            self.failures += 1
            logger.warning(f"Metrics flush timed out after {self.export_timeout}s")
        except ExportFailure as e:
            self.failures += 1
            logger.warning(f"Metrics export failed: {e}")
        except Exception as e:
            self.failures += 1
            logger.error(f"Error in metrics collection: {e}")

        return False

    async def _collection_loop(self):
        """Background collection loop."""
        while self.running:
            await asyncio.sleep(self.interval)
            await self.collect_once()


__all__ = ["PeriodicCollector"]
