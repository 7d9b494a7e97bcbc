"""Tests for the ingestion scheduler."""

import asyncio

import pytest

from conftest import ManualTimer
from peoples_thread.models import IngestionResult
from peoples_thread.scheduler import (
    AsyncioIntervalTimer,
    IngestionScheduler,
    SchedulerState,
    get_scheduler,
    reset_scheduler,
)


class RecordingRun:
    """Commit stand-in returning queued outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> IngestionResult:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else IngestionResult()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def clean_singleton():
    reset_scheduler()
    yield
    reset_scheduler()


class TestIngestionScheduler:
    """Tests for IngestionScheduler."""

    def test_initialize_starts_timer(self):
        timer = ManualTimer()
        scheduler = IngestionScheduler(RecordingRun(), interval=60, timer=timer)

        assert scheduler.state == SchedulerState.UNINITIALIZED
        assert scheduler.initialize()
        assert scheduler.state == SchedulerState.RUNNING
        assert timer.starts == 1
        assert timer.interval == 60

    def test_initialize_is_idempotent(self):
        timer = ManualTimer()
        scheduler = IngestionScheduler(RecordingRun(), interval=60, timer=timer)

        scheduler.initialize()
        assert not scheduler.initialize()
        assert timer.starts == 1

    def test_stop_and_restart(self):
        timer = ManualTimer()
        scheduler = IngestionScheduler(RecordingRun(), interval=60, timer=timer)

        scheduler.initialize()
        scheduler.stop()
        assert scheduler.state == SchedulerState.STOPPED
        assert timer.cancels == 1
        assert not timer.is_running

        scheduler.stop()
        assert timer.cancels == 1

        assert scheduler.initialize()
        assert timer.starts == 2

    @pytest.mark.asyncio
    async def test_tick_runs_commit(self):
        run = RecordingRun(IngestionResult(articles_processed=2, articles_created=2))
        timer = ManualTimer()
        scheduler = IngestionScheduler(run, interval=60, timer=timer)
        scheduler.initialize()

        await timer.fire()

        assert run.calls == 1
        assert scheduler.runs == 1
        assert scheduler.last_result.articles_created == 2
        assert scheduler.last_error is None

    @pytest.mark.asyncio
    async def test_failed_tick_keeps_timer_running(self):
        run = RecordingRun(RuntimeError("boom"), IngestionResult())
        timer = ManualTimer()
        scheduler = IngestionScheduler(run, interval=60, timer=timer)
        scheduler.initialize()

        await timer.fire()
        assert scheduler.last_error == "boom"
        assert scheduler.is_running
        assert timer.is_running

        await timer.fire()
        assert run.calls == 2
        assert scheduler.last_error is None

    @pytest.mark.asyncio
    async def test_unsuccessful_result_is_logged_not_raised(self):
        failed = IngestionResult(success=False, errors=["Failed to fetch feed: 500"])
        timer = ManualTimer()
        scheduler = IngestionScheduler(RecordingRun(failed), interval=60, timer=timer)
        scheduler.initialize()

        await timer.fire()

        assert scheduler.last_error == "Failed to fetch feed: 500"
        assert scheduler.status()["lastSuccess"] is False

    def test_status(self):
        scheduler = IngestionScheduler(RecordingRun(), interval=90, timer=ManualTimer())
        status = scheduler.status()

        assert status["state"] == "uninitialized"
        assert status["intervalSeconds"] == 90
        assert status["lastRunAt"] is None


class TestAsyncioIntervalTimer:
    """Tests for AsyncioIntervalTimer."""

    @pytest.mark.asyncio
    async def test_fires_repeatedly_until_cancelled(self):
        calls = []

        async def callback():
            calls.append(1)

        timer = AsyncioIntervalTimer()
        timer.start(callback, 0.01)
        timer.start(callback, 0.01)
        assert timer.is_running

        await asyncio.sleep(0.1)
        timer.cancel()
        fired = len(calls)
        await asyncio.sleep(0.05)

        assert fired >= 2
        assert len(calls) == fired
        assert not timer.is_running

    @pytest.mark.asyncio
    async def test_scheduler_with_real_timer(self):
        run = RecordingRun(RuntimeError("first run fails"))
        scheduler = IngestionScheduler(run, interval=0.01)

        scheduler.initialize()
        await asyncio.sleep(0.1)
        scheduler.stop()

        assert run.calls >= 2


class TestSingleton:
    """Tests for the process-wide scheduler."""

    def test_get_scheduler_returns_same_instance(self):
        first = get_scheduler(RecordingRun())
        second = get_scheduler(RecordingRun())
        assert first is second

    def test_reset_scheduler(self):
        first = get_scheduler(RecordingRun())
        reset_scheduler()
        assert get_scheduler(RecordingRun()) is not first
