"""
GeckoTerminal multi-token price fetcher.

Every HTTP request, retries included, spends one unit of the shared
RefreshBudget before it is sent. When the budget refuses, the batch is
skipped instead of exceeding the per-minute quota.
"""

import asyncio
import functools
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..core.storage.models import TokenMarketRecord
from ..refresh.budget import RefreshBudget
from .base import BaseFetcher, FetchResult

PRICE_API_SOURCE = "price_api"


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int_string(value: Any) -> Optional[str]:
    """Raw supply like "1000000000000000000000.0" as an integer string."""
    if value is None or value == "":
        return None
    try:
        return str(int(Decimal(str(value))))
    except (InvalidOperation, ValueError):
        return None


def parse_retry_after(value: Optional[str], fallback: float) -> float:
    """Seconds to wait from a Retry-After header."""
    if value is None:
        return fallback
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return fallback


def parse_token_attributes(attributes: Dict[str, Any], is_priority: Optional[bool]) -> Optional[TokenMarketRecord]:
    """Build a market record from one token's API attributes."""
    address = attributes.get("address")
    if not address:
        return None

    volume = attributes.get("volume_usd")
    if isinstance(volume, dict):
        volume = volume.get("h24")

    fdv_usd = _to_float(attributes.get("fdv_usd"))
    decimals = attributes.get("decimals")

    return TokenMarketRecord(
        contract_address=address,
        name=attributes.get("name") or None,
        symbol=attributes.get("symbol") or None,
        decimals=int(decimals) if decimals is not None else None,
        total_supply=_to_int_string(attributes.get("total_supply")),
        price_usd=_to_float(attributes.get("price_usd")),
        volume_usd=_to_float(volume),
        liquidity_usd=_to_float(attributes.get("total_reserve_in_usd")),
        fdv_usd=fdv_usd,
        # ranking uses fully diluted valuation as market cap
        market_cap=fdv_usd,
        is_priority=is_priority,
        source=PRICE_API_SOURCE,
        last_updated=datetime.now(timezone.utc),
    )


class GeckoTerminalFetcher(BaseFetcher):
    """Fetches price, valuation, volume and reserve data for token batches."""

    def __init__(
        self,
        price_api_config,
        budget: RefreshBudget,
        session: Optional[requests.Session] = None,
        max_tokens_per_call: int = 30,
    ):
        super().__init__(price_api_config.PRICE_API_NETWORK)
        self.config = price_api_config
        self.budget = budget
        self.session = session or requests.Session()
        self.max_tokens_per_call = max_tokens_per_call

    def validate_config(self) -> bool:
        return bool(self.config.PRICE_API_BASE_URL and self.config.PRICE_API_NETWORK)

    async def _get(self, url: str) -> requests.Response:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(
                self.session.get,
                url,
                headers=self.config.headers,
                timeout=self.config.PRICE_API_TIMEOUT,
            ),
        )

    def _parse_response(self, payload: Dict[str, Any], is_priority: Optional[bool]) -> Dict[str, TokenMarketRecord]:
        records: Dict[str, TokenMarketRecord] = {}
        for item in payload.get("data") or []:
            try:
                record = parse_token_attributes(item.get("attributes") or {}, is_priority)
            except (TypeError, ValueError) as e:
                self.logger.warning(f"Skipping malformed token entry {item.get('id')}: {e}")
                continue
            if record is not None:
                records[record.contract_address] = record
        return records

    async def fetch_batch(
        self, addresses: Sequence[str], is_priority: Optional[bool] = None
    ) -> FetchResult:
        """
        Fetch one batch of at most `max_tokens_per_call` addresses.

        Returns:
            FetchResult whose data maps address to TokenMarketRecord. A
            refused budget, transport error or bad status yields a failed
            result, never an exception.
        """
        if not addresses:
            return FetchResult(success=True, data={})
        if len(addresses) > self.max_tokens_per_call:
            return FetchResult(
                success=False,
                data={},
                error=f"{len(addresses)} addresses exceed {self.max_tokens_per_call} per call",
            )

        url = self.config.multi_token_url([a.lower() for a in addresses])

        for attempt in range(self.config.MAX_RATE_LIMIT_RETRIES + 1):
            if not self.budget.try_consume():
                self.logger.info(
                    f"API budget exhausted ({self.budget.calls_this_window}/{self.budget.quota}), "
                    f"skipping batch of {len(addresses)}"
                )
                return FetchResult(success=False, data={}, error="budget exhausted")

            try:
                response = await self._get(url)
            except requests.exceptions.RequestException as e:
                self.logger.error(f"Request error for batch of {len(addresses)}: {e}")
                return FetchResult(success=False, data={}, error=str(e))

            if response.status_code == 200:
                try:
                    records = self._parse_response(response.json(), is_priority)
                except ValueError as e:
                    self.logger.error(f"Invalid JSON from price API: {e}")
                    return FetchResult(success=False, data={}, error=str(e))
                return FetchResult(
                    success=True,
                    data=records,
                    metadata={"requested": len(addresses), "returned": len(records), "attempts": attempt + 1},
                )

            if response.status_code == 429:
                delay = parse_retry_after(
                    response.headers.get("Retry-After"), self.config.RATE_LIMIT_FALLBACK_DELAY
                )
                self.logger.warning(f"Rate limited, waiting {delay:.1f}s before retry {attempt + 1}")
                await asyncio.sleep(delay)
                continue

            self.logger.error(f"API error {response.status_code}: {response.text[:200]}")
            return FetchResult(success=False, data={}, error=f"HTTP {response.status_code}")

        return FetchResult(success=False, data={}, error="rate limited")

    async def fetch_many(
        self,
        addresses: Sequence[str],
        tokens_per_call: int,
        fan_out: int = 3,
        cooldown: float = 0.5,
        is_priority: Optional[bool] = None,
    ) -> FetchResult:
        """
        Fetch any number of addresses in windows of `fan_out` concurrent batches.

        Stops early once the budget refuses a batch.

        Returns:
            FetchResult whose data maps address to TokenMarketRecord and whose
            metadata["answered"] lists every address of a successful batch
        """
        size = max(1, min(tokens_per_call, self.max_tokens_per_call))
        batches = [list(addresses[i : i + size]) for i in range(0, len(addresses), size)]
        records: Dict[str, TokenMarketRecord] = {}
        answered: List[str] = []
        failed_batches = 0

        for start in range(0, len(batches), fan_out):
            window = batches[start : start + fan_out]
            results: List[FetchResult] = await asyncio.gather(
                *(self.fetch_batch(batch, is_priority) for batch in window)
            )
            for batch, result in zip(window, results):
                records.update(result.data or {})
                if result.success:
                    answered.extend(a.lower() for a in batch)
                else:
                    failed_batches += 1

            if any(result.error == "budget exhausted" for result in results):
                self.logger.info(f"Stopping after {start + len(window)}/{len(batches)} batches: budget exhausted")
                break
            if start + fan_out < len(batches) and cooldown > 0:
                await asyncio.sleep(cooldown)

        return FetchResult(
            success=failed_batches < len(batches) or not batches,
            data=records,
            error=f"{failed_batches}/{len(batches)} batches failed" if failed_batches else None,
            metadata={"answered": answered, "batches": len(batches), "failed_batches": failed_batches},
        )
