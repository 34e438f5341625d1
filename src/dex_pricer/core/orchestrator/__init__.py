"""
Recurring job scheduler for dex_pricer.

Usage:
    from dex_pricer.core.orchestrator import JobScheduler

    scheduler = JobScheduler()
    scheduler.add_job("priority_refresh", service.priority_pass, interval=2)
    scheduler.start()
    ...
    await scheduler.stop()
"""

from .base import JobError, JobResult, JobStatus, RecurringJob
from .scheduler import JobScheduler

__all__ = [
    'JobError',
    'JobResult',
    'JobStatus',
    'RecurringJob',
    'JobScheduler',
]
