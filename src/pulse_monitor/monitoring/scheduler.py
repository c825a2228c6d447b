"""
Fixed-cadence background loops.

Each loop waits one interval, runs its tick on a worker thread and repeats
until stopped. Stopping wakes the wait immediately but lets a tick that is
already running finish, so no tick is interrupted mid-write.
"""

import asyncio
import time
from typing import Any, Callable, Optional

import structlog

from pulse_monitor.core.logging import get_performance_logger

logger = structlog.get_logger(__name__)
perf_logger = get_performance_logger(__name__)


class PeriodicTask:
    """One independent background cadence."""

    def __init__(self,
                 name: str,
                 interval_seconds: float,
                 func: Callable[[], Any],
                 run_immediately: bool = False):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self.run_immediately = run_immediately

        self.tick_count = 0
        self.error_count = 0

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop."""

        if self.is_running:
            logger.warning("Periodic task already running", task=self.name)
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")

        logger.info("Periodic task started",
                    task=self.name,
                    interval=self.interval_seconds)

    async def stop(self) -> None:
        """Stop scheduling new ticks and wait for an in-flight tick."""

        if self._task is None:
            return

        self._stop_event.set()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

        logger.info("Periodic task stopped", task=self.name, ticks=self.tick_count)

    async def run_once(self) -> Any:
        """Run one tick now, outside the cadence."""
        return await self._tick()

    async def _loop(self) -> None:
        if self.run_immediately:
            await self._tick()

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(),
                                       timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            await self._tick()

    async def _tick(self) -> Any:
        start = time.perf_counter()
        try:
            result = await asyncio.to_thread(self.func)
        except Exception as e:
            self.error_count += 1
            logger.error("Error in periodic task", task=self.name, error=str(e))
            perf_logger.log_execution_time(self.name,
                                           (time.perf_counter() - start) * 1000,
                                           success=False)
            return None

        self.tick_count += 1
        perf_logger.log_execution_time(self.name, (time.perf_counter() - start) * 1000)
        return result
