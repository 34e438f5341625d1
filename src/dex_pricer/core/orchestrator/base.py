"""
Base classes and types for recurring jobs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(Enum):
    """Job execution status."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class JobError(Exception):
    """Base exception for job-related errors."""
    pass


@dataclass
class JobResult:
    """Result of one job run."""
    job_name: str
    status: JobStatus
    start_time: datetime
    end_time: Optional[datetime] = None
    output: Any = None
    error: Optional[str] = None

    @property
    def duration(self) -> Optional[timedelta]:
        """Calculate job execution duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def success(self) -> bool:
        """Check if job completed successfully."""
        return self.status == JobStatus.COMPLETED


JobFunc = Callable[[], Awaitable[Any]]


@dataclass
class RecurringJob:
    """
    A named coroutine run on a fixed interval.

    A tick that arrives while the previous run is still active is skipped,
    not queued.
    """
    name: str
    func: JobFunc
    interval: float
    run_immediately: bool = False

    # State
    status: JobStatus = JobStatus.IDLE
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_result: Optional[JobResult] = None
    runs: int = 0
    failures: int = 0
    skips: int = 0
    _running: bool = field(default=False, repr=False)

    def __post_init__(self):
        if self.interval <= 0:
            raise JobError(f"Job {self.name} needs a positive interval, got {self.interval}")

    @property
    def is_running(self) -> bool:
        return self._running

    def mark_started(self) -> None:
        self._running = True
        self.status = JobStatus.RUNNING
        self.started_at = utcnow()
        self.runs += 1

    def mark_completed(self, output: Any = None) -> JobResult:
        self._running = False
        self.status = JobStatus.COMPLETED
        self.completed_at = utcnow()
        self.last_result = JobResult(
            job_name=self.name,
            status=JobStatus.COMPLETED,
            start_time=self.started_at,
            end_time=self.completed_at,
            output=output,
        )
        return self.last_result

    def mark_failed(self, error: str) -> JobResult:
        self._running = False
        self.status = JobStatus.FAILED
        self.completed_at = utcnow()
        self.failures += 1
        self.last_result = JobResult(
            job_name=self.name,
            status=JobStatus.FAILED,
            start_time=self.started_at,
            end_time=self.completed_at,
            error=error,
        )
        return self.last_result

    def mark_skipped(self) -> JobResult:
        self.skips += 1
        now = utcnow()
        return JobResult(
            job_name=self.name,
            status=JobStatus.SKIPPED,
            start_time=now,
            end_time=now,
            error="previous run still in progress",
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert job state to dictionary representation."""
        return {
            'name': self.name,
            'interval': self.interval,
            'status': self.status.value,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'runs': self.runs,
            'failures': self.failures,
            'skips': self.skips,
        }
