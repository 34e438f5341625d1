"""
Per-minute external call budget and the scheduler state that owns it.

Both objects are mutated only from coroutines on one event loop. A check
and its increment happen without an await in between, so concurrent passes
can never overspend.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class RefreshBudget:
    """
    Counter of external price API calls in the current window.

    The counter only grows within a window; `reset()` starts the next one
    and is driven once per window by the scheduler.
    """

    def __init__(
        self,
        quota: int = 30,
        safety_margin: int = 2,
        tokens_per_call: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        if quota <= 0:
            raise ValueError("quota must be positive")
        self.quota = quota
        self.safety_margin = safety_margin
        self.tokens_per_call = tokens_per_call
        self._clock = clock
        self.calls_this_window = 0
        self.total_calls = 0
        self.refused_calls = 0
        self.window = 0
        self.window_started = clock()

    @property
    def rotation_threshold(self) -> int:
        """Calls after which the rotation pass stops spending."""
        return self.quota - self.safety_margin

    def remaining(self, threshold: Optional[int] = None) -> int:
        """Calls left before `threshold` (default: the full quota)."""
        limit = self.quota if threshold is None else min(threshold, self.quota)
        return max(0, limit - self.calls_this_window)

    def has_headroom(self, threshold: Optional[int] = None) -> bool:
        return self.remaining(threshold) > 0

    @property
    def rotation_headroom(self) -> int:
        return self.remaining(self.rotation_threshold)

    def try_consume(self, calls: int = 1) -> bool:
        """Record `calls` external calls if they fit in the quota."""
        if self.calls_this_window + calls > self.quota:
            self.refused_calls += calls
            return False
        self.calls_this_window += calls
        self.total_calls += calls
        return True

    def reset(self) -> None:
        """Start a new accounting window."""
        if self.calls_this_window:
            logger.info(
                f"API call counter reset ({self.calls_this_window}/{self.quota} used in window {self.window})"
            )
        self.calls_this_window = 0
        self.window += 1
        self.window_started = self._clock()

    def snapshot(self) -> dict:
        return {
            "window": self.window,
            "calls_this_window": self.calls_this_window,
            "quota": self.quota,
            "remaining": self.remaining(),
            "total_calls": self.total_calls,
            "refused_calls": self.refused_calls,
        }

    @classmethod
    def from_config(cls, refresh_config) -> "RefreshBudget":
        return cls(
            quota=refresh_config.API_CALLS_PER_MINUTE,
            safety_margin=refresh_config.ROTATION_SAFETY_MARGIN,
            tokens_per_call=refresh_config.TOKENS_PER_API_CALL,
        )


@dataclass
class SchedulerState:
    """
    Mutable state shared by the refresh passes.

    The priority list changes only through `apply_ranking`, which only the
    full ranking pass calls.
    """

    budget: RefreshBudget
    priority_count: int = 10
    last_full_ranking: Optional[datetime] = None
    rankings: int = 0
    _priority_tokens: List[str] = field(default_factory=list, repr=False)

    @property
    def priority_tokens(self) -> Tuple[str, ...]:
        return tuple(self._priority_tokens)

    def apply_ranking(self, ranked_tokens: Sequence[str]) -> Tuple[str, ...]:
        """Replace the priority list with the top of a fresh ranking."""
        self._priority_tokens = [t.lower() for t in ranked_tokens[: self.priority_count]]
        self.last_full_ranking = datetime.now(timezone.utc)
        self.rankings += 1
        return self.priority_tokens

    def is_priority(self, token: str) -> bool:
        return token.lower() in self._priority_tokens
