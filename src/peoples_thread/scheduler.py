"""Process-wide scheduler that runs commit ingestion on a fixed interval.

Lifecycle is ``uninitialized -> running -> stopped``. ``initialize()`` is a
no-op while running, ``stop()`` cancels the timer and clears its handle. No
state survives a restart and missed ticks are never replayed.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Protocol

from peoples_thread.config import settings
from peoples_thread.models import IngestionResult, utc_now

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]
RunCallable = Callable[[], Awaitable[IngestionResult]]


class SchedulerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    STOPPED = "stopped"


class IntervalTimer(Protocol):
    """Something that calls a coroutine function every ``interval`` seconds."""

    @property
    def is_running(self) -> bool: ...

    def start(self, callback: TickCallback, interval: float) -> None: ...

    def cancel(self) -> None: ...


class AsyncioIntervalTimer:
    """Interval timer backed by a task on the running event loop."""

    def __init__(self) -> None:
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: TickCallback, interval: float) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(callback, interval))

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @staticmethod
    async def _loop(callback: TickCallback, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await callback()


class IngestionScheduler:
    """Runs the commit operation periodically."""

    def __init__(
        self,
        run: RunCallable,
        interval: float | None = None,
        timer: IntervalTimer | None = None,
    ):
        self.run = run
        self.interval = interval or settings.scheduler_interval_seconds
        self.timer = timer or AsyncioIntervalTimer()
        self.state = SchedulerState.UNINITIALIZED
        self.runs = 0
        self.last_run_at: datetime | None = None
        self.last_result: IngestionResult | None = None
        self.last_error: str | None = None

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    def initialize(self) -> bool:
        """Start the timer unless it is already running.

        Returns:
            True if a timer was started, False if one was already running
        """
        if self.is_running:
            logger.debug("Scheduler already running")
            return False

        self.timer.start(self.tick, self.interval)
        self.state = SchedulerState.RUNNING
        logger.info(f"Ingestion scheduler initialized (every {self.interval:.0f}s)")
        return True

    def stop(self) -> None:
        """Cancel the timer."""
        if self.state != SchedulerState.RUNNING:
            return
        self.timer.cancel()
        self.state = SchedulerState.STOPPED
        logger.info("Ingestion scheduler stopped")

    async def tick(self) -> None:
        """Run one scheduled ingestion; errors are logged, never raised."""
        logger.info("Scheduled feed ingestion triggered")
        self.runs += 1
        self.last_run_at = utc_now()
        try:
            result = await self.run()
        except Exception as e:
            logger.exception("Scheduled ingestion run failed")
            self.last_error = str(e)
            return

        self.last_result = result
        self.last_error = None if result.success else "; ".join(result.errors)
        if result.success:
            logger.info(f"Scheduled run finished: {result.message}")
        else:
            logger.error(f"Scheduled run failed: {'; '.join(result.errors)}")

    def status(self) -> dict:
        """Snapshot of the scheduler state for monitoring."""
        return {
            "state": self.state.value,
            "intervalSeconds": self.interval,
            "runs": self.runs,
            "lastRunAt": self.last_run_at.isoformat() if self.last_run_at else None,
            "lastSuccess": self.last_result.success if self.last_result else None,
            "lastError": self.last_error,
        }


_scheduler: IngestionScheduler | None = None


def get_scheduler(run: RunCallable | None = None) -> IngestionScheduler:
    """Return the process-wide scheduler, creating it on first use.

    Args:
        run: Commit operation to schedule; defaults to a fresh pipeline's commit
    """
    global _scheduler
    if _scheduler is None:
        if run is None:
            from peoples_thread.pipeline import IngestionPipeline

            run = IngestionPipeline.from_settings(settings).commit
        _scheduler = IngestionScheduler(run)
    return _scheduler


def reset_scheduler() -> None:
    """Stop and discard the process-wide scheduler."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.stop()
    _scheduler = None
