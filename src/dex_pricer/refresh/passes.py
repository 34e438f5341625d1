"""
Refresh passes run by the scheduler.

Each pass takes the shared SchedulerState plus its collaborators, never
raises, and reports what it did in a PassResult. Passes that cannot spend
the external call budget skip and wait for their next tick.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..core.storage.models import TokenMarketRecord
from .budget import SchedulerState

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    """Outcome of one refresh pass."""
    name: str
    skipped: bool = False
    reason: str = ""
    requested: int = 0
    updated: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _touch_records(addresses: Sequence[str], is_priority: bool) -> List[TokenMarketRecord]:
    """Records that only advance last_updated, for tokens the API had no data for."""
    now = datetime.now(timezone.utc)
    return [
        TokenMarketRecord(contract_address=address, is_priority=is_priority, last_updated=now)
        for address in addresses
    ]


async def discovery_pass(token_fetcher, storage) -> PassResult:
    """Upsert tokens created within the trailing discovery window."""
    result = PassResult(name="discovery")
    try:
        fetched = await token_fetcher.fetch_new_tokens()
        if fetched.failed:
            result.error = fetched.error
            logger.error(f"Token discovery failed: {fetched.error}")
            return result

        tokens = fetched.data or []
        result.requested = len(tokens)
        if not tokens:
            result.skipped, result.reason = True, "no new tokens"
            logger.info("No token creation events in the discovery window")
            return result

        result.updated = await storage.upsert_tokens(tokens)
        logger.info(f"Discovery pass stored {result.updated} tokens")
    except Exception as e:
        result.error = str(e)
        logger.error(f"Discovery pass failed: {e}")
    return result


async def priority_refresh_pass(state: SchedulerState, storage, price_fetcher) -> PassResult:
    """Refresh exactly the priority list in one API call."""
    result = PassResult(name="priority_refresh")
    tokens = state.priority_tokens

    if not tokens:
        result.skipped, result.reason = True, "no priority tokens"
        logger.debug("No priority tokens defined yet, skipping priority update")
        return result

    if not state.budget.has_headroom():
        result.skipped, result.reason = True, "budget"
        logger.info("API rate limit reached, skipping priority update")
        return result

    result.requested = len(tokens)
    try:
        fetched = await price_fetcher.fetch_batch(list(tokens), is_priority=True)
        if fetched.failed:
            result.error = fetched.error
            if fetched.error == "budget exhausted":
                result.skipped, result.reason, result.error = True, "budget", None
            return result

        records = list(fetched.data.values())
        missing = [t for t in tokens if t not in fetched.data]
        records.extend(_touch_records(missing, is_priority=True))
        result.updated = await storage.upsert_market_records(records)
        logger.info(f"Updated price data for {len(fetched.data)}/{len(tokens)} priority tokens")
    except Exception as e:
        result.error = str(e)
        logger.error(f"Priority refresh failed: {e}")
    return result


async def rotation_refresh_pass(
    state: SchedulerState,
    storage,
    price_fetcher,
    fan_out: int = 3,
    cooldown: float = 0.5,
) -> PassResult:
    """
    Refresh non-priority tokens oldest-first with the budget left above the
    safety margin.
    """
    result = PassResult(name="rotation_refresh")
    budget = state.budget
    headroom = budget.rotation_headroom

    if headroom <= 0:
        result.skipped, result.reason = True, "budget"
        logger.info(
            f"Near API rate limit ({budget.calls_this_window}/{budget.quota}), skipping non-priority update"
        )
        return result

    try:
        max_tokens = headroom * budget.tokens_per_call
        candidates = await storage.get_rotation_candidates(state.priority_tokens, max_tokens)
        if not candidates:
            result.skipped, result.reason = True, "no candidates"
            logger.info("No non-priority tokens found")
            return result

        result.requested = len(candidates)
        logger.info(
            f"Updating {len(candidates)} non-priority tokens (oldest first, {headroom} calls available)"
        )

        fetched = await price_fetcher.fetch_many(
            candidates,
            tokens_per_call=budget.tokens_per_call,
            fan_out=fan_out,
            cooldown=cooldown,
            is_priority=False,
        )

        records = list(fetched.data.values())
        answered = fetched.metadata.get("answered", [])
        missing = [a for a in answered if a not in fetched.data]
        records.extend(_touch_records(missing, is_priority=False))

        if records:
            result.updated = await storage.upsert_market_records(records)
        if fetched.error:
            logger.warning(f"Non-priority update partially failed: {fetched.error}")
        logger.info(f"Updated price data for {len(fetched.data)} non-priority tokens")
    except Exception as e:
        result.error = str(e)
        logger.error(f"Non-priority refresh failed: {e}")
    return result


async def full_ranking_pass(
    state: SchedulerState,
    storage,
    price_fetcher,
    fan_out: int = 3,
    cooldown: float = 0.5,
) -> PassResult:
    """
    Rebuild the priority list as the top tokens by market cap.

    With nothing ranked yet, one rotation pass seeds market records first.
    """
    result = PassResult(name="full_ranking")
    try:
        top = await storage.get_top_by_market_cap(state.priority_count)

        if not top:
            logger.info("No ranked tokens yet, running an initial unranked pass")
            seed = await rotation_refresh_pass(state, storage, price_fetcher, fan_out, cooldown)
            result.requested = seed.requested
            top = await storage.get_top_by_market_cap(state.priority_count)

        priority = state.apply_ranking([record.contract_address for record in top])
        result.updated = len(priority)
        logger.info(f"Updated top {state.priority_count} tokens: {', '.join(priority) or 'none'}")
    except Exception as e:
        result.error = str(e)
        logger.error(f"Full ranking pass failed: {e}")
    return result
