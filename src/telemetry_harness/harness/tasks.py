"""
Repeating emitter tasks.

Each task runs one unit of work, then sleeps a fixed or randomized
interval, until its stop token is set. Failures in the work are logged and
never end the loop.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Union


logger = logging.getLogger(__name__)

Interval = Union[float, Callable[[], float]]


class RepeatingTask:
    """Cancellable repeating unit of work."""

    def __init__(
        self,
        name: str,
        work: Callable[[], Any],
        interval: Interval,
        iterations: Optional[int] = None
    ):
        """
        Initialize repeating task.

        Args:
            name: Task name used in logs
            work: Sync or async callable run on every iteration
            interval: Seconds between iterations, or a callable returning them
            iterations: Stop after this many iterations (None runs until stopped)
        """
        if iterations is not None and iterations < 0:
            raise ValueError("iterations must be >= 0")

        self.name = name
        self.work = work
        self.interval = interval
        self.iterations = iterations
        self.iterations_completed = 0
        self.failures = 0
        self.task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def next_delay(self) -> float:
        """Seconds to wait before the next iteration."""
        delay = self.interval() if callable(self.interval) else self.interval
        return max(0.0, float(delay))

    def start(self) -> asyncio.Task:
        """Schedule the task on the running event loop."""
        if self.running:
            return self.task

        self._stop_event = asyncio.Event()
        self.task = asyncio.create_task(self._run(), name=self.name)
        logger.debug(f"Started task {self.name}")
        return self.task

    async def stop(self) -> None:
        """Set the stop token and wait for the current iteration to finish."""
        if self.task is None:
            return

        self._stop_event.set()
        await self.task
        logger.debug(f"Stopped task {self.name} after {self.iterations_completed} iterations")

    async def wait(self) -> None:
        """Wait until a bounded task has run all of its iterations."""
        if self.task is not None:
            await self.task

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            if self.iterations is not None and self.iterations_completed >= self.iterations:
                break

            try:
                result = self.work()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.failures += 1
                logger.warning(f"Task {self.name} iteration failed: {e}")

            self.iterations_completed += 1
            if self.iterations is not None and self.iterations_completed >= self.iterations:
                break

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                pass


__all__ = ["RepeatingTask", "Interval"]
