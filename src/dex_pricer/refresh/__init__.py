"""
Rate-budgeted refresh scheduling.

Passes and the service live in `dex_pricer.refresh.passes` and
`dex_pricer.refresh.service`.
"""

from .budget import RefreshBudget, SchedulerState

__all__ = ["RefreshBudget", "SchedulerState"]
