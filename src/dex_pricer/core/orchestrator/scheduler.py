"""
Cooperative scheduler for named recurring jobs.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from .base import JobError, JobFunc, JobResult, RecurringJob

logger = logging.getLogger(__name__)


class JobScheduler:
    """
    Runs each registered job on its own fixed interval in one event loop.

    Every tick launches the job in its own task, so a slow run never delays
    the ticks of other jobs. A job failure is logged and the job keeps its
    schedule.
    """

    def __init__(self):
        self.jobs: Dict[str, RecurringJob] = {}
        self._loops: Dict[str, asyncio.Task] = {}
        self._runs: Set[asyncio.Task] = set()
        self.running = False

    def add_job(
        self,
        name: str,
        func: JobFunc,
        interval: float,
        run_immediately: bool = False,
    ) -> RecurringJob:
        """Register a job. Jobs added while running are started at once."""
        if name in self.jobs:
            raise JobError(f"Job already registered: {name}")

        job = RecurringJob(name=name, func=func, interval=interval, run_immediately=run_immediately)
        self.jobs[name] = job
        logger.info(f"Added job: {name} (every {interval}s)")

        if self.running:
            self._loops[name] = asyncio.create_task(self._job_loop(job), name=f"job:{name}")
        return job

    async def run_job_once(self, name: str) -> JobResult:
        """
        Run a job now unless it is already running.

        Never raises: failures are returned as a failed JobResult.
        """
        job = self.jobs.get(name)
        if job is None:
            raise JobError(f"Unknown job: {name}")

        if job.is_running:
            logger.debug(f"Skipping {name}: previous run still in progress")
            return job.mark_skipped()

        job.mark_started()
        try:
            output = await job.func()
        except asyncio.CancelledError:
            job.mark_failed("cancelled")
            raise
        except Exception as e:
            logger.error(f"❌ {name} failed: {e}", exc_info=True)
            return job.mark_failed(str(e))

        result = job.mark_completed(output)
        logger.debug(f"✅ {name} completed in {result.duration.total_seconds():.2f}s")
        return result

    def _launch(self, name: str) -> asyncio.Task:
        task = asyncio.create_task(self.run_job_once(name), name=f"run:{name}")
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def _job_loop(self, job: RecurringJob) -> None:
        if not job.run_immediately:
            await asyncio.sleep(job.interval)
        while True:
            self._launch(job.name)
            await asyncio.sleep(job.interval)

    def start(self) -> None:
        """Start the loops of every registered job."""
        if self.running:
            return
        self.running = True
        for name, job in self.jobs.items():
            self._loops[name] = asyncio.create_task(self._job_loop(job), name=f"job:{name}")
        logger.info(f"Scheduler started with {len(self.jobs)} jobs")

    async def stop(self) -> None:
        """Cancel job loops and any in-flight runs."""
        self.running = False
        tasks: List[asyncio.Task] = [*self._loops.values(), *self._runs]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loops.clear()
        self._runs.clear()
        logger.info("Scheduler stopped")

    def stats(self) -> Dict[str, Any]:
        return {name: job.to_dict() for name, job in self.jobs.items()}

    def get_job(self, name: str) -> Optional[RecurringJob]:
        return self.jobs.get(name)
