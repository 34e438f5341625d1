"""Tests for the recurring job scheduler."""
import asyncio

import pytest

from ..base import JobError, JobStatus, RecurringJob
from ..scheduler import JobScheduler


class TestRecurringJob:

    def test_rejects_non_positive_interval(self):
        async def noop():
            return None

        with pytest.raises(JobError):
            RecurringJob(name="bad", func=noop, interval=0)

    def test_to_dict(self):
        async def noop():
            return None

        job = RecurringJob(name="noop", func=noop, interval=5)

        assert job.to_dict()["status"] == "idle"
        assert job.to_dict()["interval"] == 5


class TestJobScheduler:

    @pytest.fixture
    def scheduler(self):
        return JobScheduler()

    @pytest.mark.asyncio
    async def test_run_job_once_returns_output(self, scheduler):
        async def answer():
            return 42

        scheduler.add_job("answer", answer, interval=60)

        result = await scheduler.run_job_once("answer")

        assert result.success
        assert result.output == 42
        assert scheduler.get_job("answer").runs == 1

    @pytest.mark.asyncio
    async def test_duplicate_job_rejected(self, scheduler):
        async def noop():
            return None

        scheduler.add_job("noop", noop, interval=1)
        with pytest.raises(JobError):
            scheduler.add_job("noop", noop, interval=1)

    @pytest.mark.asyncio
    async def test_unknown_job(self, scheduler):
        with pytest.raises(JobError):
            await scheduler.run_job_once("missing")

    @pytest.mark.asyncio
    async def test_busy_job_is_skipped(self, scheduler):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()
            return "done"

        scheduler.add_job("slow", slow, interval=60)

        first = asyncio.create_task(scheduler.run_job_once("slow"))
        await started.wait()
        skipped = await scheduler.run_job_once("slow")
        release.set()
        completed = await first

        assert skipped.status is JobStatus.SKIPPED
        assert completed.status is JobStatus.COMPLETED
        job = scheduler.get_job("slow")
        assert job.runs == 1
        assert job.skips == 1

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, scheduler):
        calls = []

        async def broken():
            raise RuntimeError("boom")

        async def healthy():
            calls.append("healthy")

        scheduler.add_job("broken", broken, interval=60)
        scheduler.add_job("healthy", healthy, interval=60)

        failed = await scheduler.run_job_once("broken")
        ok = await scheduler.run_job_once("healthy")

        assert failed.status is JobStatus.FAILED
        assert failed.error == "boom"
        assert ok.success
        assert calls == ["healthy"]
        assert scheduler.get_job("broken").is_running is False

    @pytest.mark.asyncio
    async def test_loops_run_on_interval_and_stop(self, scheduler):
        ticks = []

        async def tick():
            ticks.append(1)

        scheduler.add_job("tick", tick, interval=0.01, run_immediately=True)
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()
        seen = len(ticks)
        await asyncio.sleep(0.03)

        assert seen >= 2
        assert len(ticks) == seen
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_failing_loop_keeps_its_schedule(self, scheduler):
        attempts = []

        async def flaky():
            attempts.append(1)
            raise ValueError("flaky")

        scheduler.add_job("flaky", flaky, interval=0.01, run_immediately=True)
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert len(attempts) >= 2
        assert scheduler.get_job("flaky").failures == len(attempts)

    @pytest.mark.asyncio
    async def test_job_added_while_running_starts(self, scheduler):
        ran = asyncio.Event()

        async def late():
            ran.set()

        scheduler.start()
        scheduler.add_job("late", late, interval=0.01, run_immediately=True)
        await asyncio.wait_for(ran.wait(), timeout=1)
        await scheduler.stop()

    def test_stats(self, scheduler):
        async def noop():
            return None

        scheduler.add_job("noop", noop, interval=3)

        assert scheduler.stats()["noop"]["interval"] == 3
