"""
On-chain enrichment pipeline.

For every tracked token, in batches: metadata -> pool discovery -> pool
state -> price/liquidity -> bulk upsert. The reference price is read once
per run. A run that is triggered while another is active is skipped.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..batchers.errors import BatchError
from ..core.storage.models import TokenMarketRecord
from .calculator import PriceCalculator
from .pool_types import TokenMetadata

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentStats:
    """Outcome of one enrichment run."""
    skipped: bool = False
    tokens: int = 0
    batches: int = 0
    failed_batches: int = 0
    records: int = 0
    priced: int = 0
    reference_price_usd: Optional[float] = None
    errors: List[str] = field(default_factory=list)


class OnChainEnrichmentPipeline:
    """Prices tracked tokens from their reference-asset pools and persists the records."""

    def __init__(
        self,
        storage,
        metadata_batcher,
        discovery_batcher,
        state_batcher,
        calculator: PriceCalculator,
        oracle,
        batch_size: int = 30,
        batch_delay: float = 3.0,
    ):
        self.storage = storage
        self.metadata_batcher = metadata_batcher
        self.discovery_batcher = discovery_batcher
        self.state_batcher = state_batcher
        self.calculator = calculator
        self.oracle = oracle
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._in_flight = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def is_running(self) -> bool:
        return self._in_flight

    async def enrich_batch(
        self, tokens: Sequence[str], reference_price_usd: float
    ) -> List[TokenMarketRecord]:
        """
        Price one batch of tokens.

        Raises:
            BatchError: If pool discovery or pool state could not be fetched
        """
        raw_metadata = await self.metadata_batcher.fetch_metadata(list(tokens))
        metadata: Dict[str, TokenMetadata] = {
            token: TokenMetadata.from_dict(token, data) for token, data in raw_metadata.items()
        }

        discovery = await self.discovery_batcher.batch_call(list(metadata))
        if not discovery.success:
            raise BatchError(f"Pool discovery failed: {discovery.error}")
        token_pools = discovery.data["token_pools"]
        skeletons = discovery.data["pools"]

        pool_states = {}
        if skeletons:
            state = await self.state_batcher.batch_call(list(skeletons), skeletons=skeletons)
            if not state.success:
                raise BatchError(f"Pool state fetch failed: {state.error}")
            pool_states = state.data

        return self.calculator.calculate_batch(
            metadata, token_pools, pool_states, reference_price_usd
        )

    async def run(self, addresses: Optional[Sequence[str]] = None) -> EnrichmentStats:
        """
        Enrich `addresses`, or every tracked token when omitted.

        Batch failures are logged and the run moves on to the next batch.
        """
        if self._in_flight:
            self.logger.info("Enrichment already in progress, skipping this trigger")
            return EnrichmentStats(skipped=True)

        self._in_flight = True
        try:
            return await self._run(addresses)
        finally:
            self._in_flight = False

    async def _run(self, addresses: Optional[Sequence[str]]) -> EnrichmentStats:
        stats = EnrichmentStats()
        tokens = list(addresses) if addresses is not None else await self.storage.list_token_addresses()
        stats.tokens = len(tokens)
        if not tokens:
            self.logger.info("No tracked tokens to enrich")
            return stats

        reference_price = await self.oracle.get_price()
        stats.reference_price_usd = reference_price

        batches = [tokens[i : i + self.batch_size] for i in range(0, len(tokens), self.batch_size)]
        self.logger.info(
            f"Enriching {len(tokens)} tokens in {len(batches)} batches "
            f"(reference price ${reference_price:.2f})"
        )

        for index, batch in enumerate(batches):
            if index > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
            stats.batches += 1
            try:
                records = await self.enrich_batch(batch, reference_price)
                stats.records += await self.storage.upsert_market_records(records)
                stats.priced += sum(1 for record in records if record.price_usd)
            except Exception as e:
                stats.failed_batches += 1
                stats.errors.append(str(e))
                self.logger.error(f"Enrichment batch {index + 1}/{len(batches)} failed: {e}")

        self.logger.info(
            f"Enrichment complete: {stats.records} records, {stats.priced} priced, "
            f"{stats.failed_batches} failed batches"
        )
        return stats
