"""
Price and liquidity calculator for tokens paired with the reference asset.

Liquidity and supply stay integers or Decimals until the final USD figures;
only those outputs are converted to float.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Union

from ..core.storage.models import TokenMarketRecord
from .pool_types import PoolInfo, TokenMetadata
from .v3_math import get_sqrt_ratio_at_tick, price_from_tick, virtual_amounts

logger = logging.getLogger(__name__)

ONCHAIN_SOURCE = "onchain"


def _as_int(value: Union[int, str, None]) -> int:
    """Parse a wide integer that may arrive as a decimal string."""
    if value is None or value == "":
        return 0
    return int(value)


def select_main_pool(pools: Iterable[PoolInfo]) -> Optional[PoolInfo]:
    """
    Pool with the largest liquidity, compared as integers. First wins ties.

    Pools without liquidity or without a tick are never selected.
    """
    best: Optional[PoolInfo] = None
    best_liquidity = 0
    for pool in pools:
        if pool.tick is None:
            continue
        liquidity = _as_int(pool.liquidity)
        if liquidity > best_liquidity:
            best, best_liquidity = pool, liquidity
    return best


def calculate_market_cap(total_supply: Union[int, str], decimals: int, price_usd: float) -> float:
    """Normalized total supply times USD price."""
    try:
        supply = Decimal(_as_int(total_supply)) / (Decimal(10) ** decimals)
        return float(supply * Decimal(str(price_usd)))
    except (InvalidOperation, ValueError, TypeError) as e:
        logger.warning(f"Market cap calculation failed: {e}")
        return 0.0


class PriceCalculator:
    """
    Derives a TokenMarketRecord from a token's discovered pools.

    Every pool is expected to pair the token with the reference asset.
    """

    def __init__(self, reference_asset: str, reference_decimals: int = 18):
        self.reference_asset = reference_asset.lower()
        self.reference_decimals = reference_decimals
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def token_price_in_reference(
        self, token: str, pool: PoolInfo, token_decimals: int
    ) -> float:
        """Price of one token in reference asset units; 0 when the tick is missing."""
        if pool.tick is None:
            return 0.0

        is_token0 = pool.token0 == token
        if is_token0:
            return price_from_tick(pool.tick, token_decimals, self.reference_decimals)

        # token is token1: invert the token0 (reference) price
        reference_in_token = price_from_tick(pool.tick, self.reference_decimals, token_decimals)
        return 1.0 / reference_in_token if reference_in_token else 0.0

    def liquidity_usd(
        self,
        token: str,
        pool: PoolInfo,
        token_decimals: int,
        token_price_usd: float,
        reference_price_usd: float,
    ) -> float:
        """USD value of the amounts approximately backing the pool's in-range liquidity."""
        liquidity = _as_int(pool.liquidity)
        sqrt_price_x96 = _as_int(pool.sqrt_price_x96)
        if not sqrt_price_x96 and pool.tick is not None:
            sqrt_price_x96 = get_sqrt_ratio_at_tick(pool.tick)
        if liquidity <= 0 or sqrt_price_x96 <= 0:
            return 0.0

        amount0_raw, amount1_raw = virtual_amounts(liquidity, sqrt_price_x96)

        is_token0 = pool.token0 == token
        if is_token0:
            token_raw, reference_raw = amount0_raw, amount1_raw
        else:
            token_raw, reference_raw = amount1_raw, amount0_raw

        token_amount = Decimal(token_raw) / (Decimal(10) ** token_decimals)
        reference_amount = Decimal(reference_raw) / (Decimal(10) ** self.reference_decimals)

        value = token_amount * Decimal(str(token_price_usd)) + reference_amount * Decimal(
            str(reference_price_usd)
        )
        return float(value)

    def calculate(
        self,
        token: str,
        metadata: TokenMetadata,
        pools: List[PoolInfo],
        reference_price_usd: float,
    ) -> TokenMarketRecord:
        """
        Build the market record for one token.

        A token without pools still produces a record with zero price,
        liquidity and market cap and a pool count of 0.
        """
        token = token.lower()
        pools = [pool for pool in pools if pool.contains(token)]
        record = TokenMarketRecord(
            contract_address=token,
            name=metadata.name,
            symbol=metadata.symbol,
            decimals=metadata.decimals,
            total_supply=metadata.total_supply,
            price_usd=0.0,
            liquidity_usd=0.0,
            market_cap=0.0,
            pool_count=len(pools),
            main_dex="",
            main_pool_address="",
            main_pool_tick=0,
            source=ONCHAIN_SOURCE,
            last_updated=datetime.now(timezone.utc),
        )

        main_pool = select_main_pool(pools)
        if main_pool is None:
            return record

        record.main_dex = main_pool.dex
        record.main_pool_address = main_pool.pool_address
        record.main_pool_tick = main_pool.tick if main_pool.tick is not None else 0

        try:
            price_in_reference = self.token_price_in_reference(
                token, main_pool, metadata.decimals
            )
            price_usd = price_in_reference * reference_price_usd
            record.price_usd = price_usd
            record.liquidity_usd = self.liquidity_usd(
                token, main_pool, metadata.decimals, price_usd, reference_price_usd
            )
            if price_usd > 0:
                record.market_cap = calculate_market_cap(
                    metadata.total_supply, metadata.decimals, price_usd
                )
        except (ArithmeticError, ValueError) as e:
            self.logger.warning(f"Pricing {token} from pool {main_pool.pool_address} failed: {e}")
            record.price_usd = 0.0
            record.liquidity_usd = 0.0
            record.market_cap = 0.0

        return record

    def calculate_batch(
        self,
        metadata: Dict[str, TokenMetadata],
        token_pools: Dict[str, List[str]],
        pool_states: Dict[str, PoolInfo],
        reference_price_usd: float,
    ) -> List[TokenMarketRecord]:
        """Records for every token in `metadata`, in its iteration order."""
        records = []
        for token, token_metadata in metadata.items():
            pools = [
                pool_states[address]
                for address in token_pools.get(token, [])
                if address in pool_states
            ]
            records.append(self.calculate(token, token_metadata, pools, reference_price_usd))
        return records
