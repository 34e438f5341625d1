"""
Price refresh service.

Wires configuration, storage, the on-chain batchers and the price API
fetcher into one JobScheduler:

    discovery          new tokens from factory creation events
    priority_refresh   the top tokens by market cap, one API call
    rotation_refresh   everything else, oldest first, within the budget
    full_ranking       rebuilds the priority list
    onchain_enrichment pool-derived price and liquidity for all tokens
    budget_reset       opens a new rate budget window
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from web3 import Web3

from ..batchers.base import BatchConfig
from ..batchers.erc20_metadata import ERC20MetadataBatcher
from ..batchers.uniswap_v3_pools import UniswapV3PoolDiscoveryBatcher, UniswapV3PoolStateBatcher
from ..config import ConfigManager, get_config
from ..core.orchestrator import JobScheduler
from ..core.storage import ConnectionError as StorageConnectionError, create_storage
from ..fetchers.price_api import GeckoTerminalFetcher
from ..fetchers.token_creation import TokenCreationFetcher
from ..pricing.calculator import PriceCalculator
from ..pricing.enrichment import EnrichmentStats, OnChainEnrichmentPipeline
from ..pricing.oracle import ReferencePriceOracle
from .budget import RefreshBudget, SchedulerState
from .passes import (
    PassResult,
    discovery_pass,
    full_ranking_pass,
    priority_refresh_pass,
    rotation_refresh_pass,
)

logger = logging.getLogger(__name__)


class PriceRefreshService:
    """
    Long-running token price service.

    Every collaborator can be injected; anything omitted is built from the
    configuration.
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        storage=None,
        web3: Optional[Web3] = None,
        token_fetcher=None,
        price_fetcher=None,
        oracle=None,
        enrichment=None,
        budget: Optional[RefreshBudget] = None,
    ):
        self.config = config or get_config()
        refresh = self.config.refresh
        chain = self.config.chain
        protocols = self.config.protocols

        self.storage = storage or create_storage(self.config.database)
        self.budget = budget or RefreshBudget.from_config(refresh)
        self.state = SchedulerState(budget=self.budget, priority_count=refresh.PRIORITY_TOKEN_COUNT)
        self.scheduler = JobScheduler()

        self.token_fetcher = token_fetcher or TokenCreationFetcher(chain, protocols)
        self.price_fetcher = price_fetcher or GeckoTerminalFetcher(
            self.config.price_api,
            self.budget,
            max_tokens_per_call=refresh.TOKENS_PER_API_CALL,
        )

        if oracle is None or enrichment is None:
            web3 = web3 or Web3(
                Web3.HTTPProvider(chain.RPC_URL, request_kwargs={"timeout": chain.RPC_TIMEOUT})
            )
            batch_config = BatchConfig.from_refresh_config(refresh)
            state_batcher = UniswapV3PoolStateBatcher(
                web3, batch_config, multicall_address=chain.MULTICALL3_ADDRESS
            )
            reference = chain.reference_pool
            oracle = oracle or ReferencePriceOracle(
                state_batcher,
                reference["pool_address"],
                reference["reference_asset"],
                reference_decimals=reference["reference_decimals"],
                usd_decimals=reference["usd_decimals"],
                ttl_seconds=refresh.REFERENCE_PRICE_TTL,
                fallback_price=refresh.REFERENCE_PRICE_FALLBACK_USD,
            )
            enrichment = enrichment or OnChainEnrichmentPipeline(
                storage=self.storage,
                metadata_batcher=ERC20MetadataBatcher(
                    web3, batch_config, multicall_address=chain.MULTICALL3_ADDRESS
                ),
                discovery_batcher=UniswapV3PoolDiscoveryBatcher(
                    web3,
                    reference["reference_asset"],
                    protocols.POOL_REGISTRIES,
                    protocols.FEE_TIERS,
                    batch_config,
                    multicall_address=chain.MULTICALL3_ADDRESS,
                ),
                state_batcher=state_batcher,
                calculator=PriceCalculator(
                    reference["reference_asset"], reference["reference_decimals"]
                ),
                oracle=oracle,
                batch_size=refresh.TOKEN_BATCH_SIZE,
                batch_delay=refresh.ENRICHMENT_BATCH_DELAY,
            )

        self.oracle = oracle
        self.enrichment = enrichment
        self._stopped = asyncio.Event()

    # Job bodies

    async def run_discovery(self) -> PassResult:
        return await discovery_pass(self.token_fetcher, self.storage)

    async def run_priority_refresh(self) -> PassResult:
        result = await priority_refresh_pass(self.state, self.storage, self.price_fetcher)
        if result.reason == "no priority tokens" and self._ranking_is_due():
            logger.info("Priority list is empty, triggering a full ranking pass")
            await self.scheduler.run_job_once("full_ranking")
        return result

    def _ranking_is_due(self) -> bool:
        """An empty priority list re-ranks at most once per rotation interval."""
        ranking = self.scheduler.get_job("full_ranking")
        if ranking is None or ranking.is_running:
            return False
        last = self.state.last_full_ranking
        if last is None:
            return True
        age = (datetime.now(timezone.utc) - last).total_seconds()
        return age >= self.config.refresh.ROTATION_INTERVAL

    async def run_rotation_refresh(self) -> PassResult:
        return await rotation_refresh_pass(
            self.state,
            self.storage,
            self.price_fetcher,
            fan_out=self.config.refresh.FAN_OUT,
            cooldown=self.config.refresh.FAN_OUT_COOLDOWN,
        )

    async def run_full_ranking(self) -> PassResult:
        return await full_ranking_pass(
            self.state,
            self.storage,
            self.price_fetcher,
            fan_out=self.config.refresh.FAN_OUT,
            cooldown=self.config.refresh.FAN_OUT_COOLDOWN,
        )

    async def run_enrichment(self) -> EnrichmentStats:
        return await self.enrichment.run()

    async def reset_budget(self) -> Dict[str, Any]:
        self.budget.reset()
        return self.budget.snapshot()

    async def reference_price(self) -> float:
        return await self.oracle.get_price()

    # Lifecycle

    async def start(self) -> None:
        """
        Connect storage, open the budget window, seed tokens and the
        priority list, then schedule every recurring job.
        """
        intervals = self.config.refresh.job_intervals
        await self.storage.connect()
        if not await self.storage.health_check():
            await self.storage.disconnect()
            raise StorageConnectionError("Storage health check failed after connect")

        self.scheduler.add_job("budget_reset", self.reset_budget, intervals["budget_reset"])
        self.scheduler.start()

        logger.info("🚀 Running startup discovery and ranking passes")
        await self.run_discovery()
        await self.run_full_ranking()

        self.scheduler.add_job("discovery", self.run_discovery, intervals["discovery"])
        self.scheduler.add_job("priority_refresh", self.run_priority_refresh, intervals["priority_refresh"])
        self.scheduler.add_job("rotation_refresh", self.run_rotation_refresh, intervals["rotation_refresh"])
        self.scheduler.add_job("full_ranking", self.run_full_ranking, intervals["full_ranking"])
        self.scheduler.add_job(
            "onchain_enrichment",
            self.run_enrichment,
            intervals["onchain_enrichment"],
            run_immediately=True,
        )
        self._stopped.clear()
        logger.info(f"✅ Price refresh service started with {len(self.scheduler.jobs)} jobs")

    async def stop(self) -> None:
        """Cancel every job and disconnect storage."""
        await self.scheduler.stop()
        await self.storage.disconnect()
        self._stopped.set()
        logger.info("Price refresh service stopped")

    async def run_forever(self) -> None:
        """Start the service and block until stop() is called or the task is cancelled."""
        await self.start()
        try:
            await self._stopped.wait()
        finally:
            if self.scheduler.running:
                await self.stop()

    def stats(self) -> Dict[str, Any]:
        return {
            "budget": self.budget.snapshot(),
            "priority_tokens": list(self.state.priority_tokens),
            "last_full_ranking": (
                self.state.last_full_ranking.isoformat() if self.state.last_full_ranking else None
            ),
            "reference_price_usd": self.oracle.cached_price,
            "jobs": self.scheduler.stats(),
        }
