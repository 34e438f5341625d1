"""
Time-cached USD price of the reference asset.

The price is read from one authoritative reference/USD pool. The oracle
never raises: a failed read returns the last known price, or the
configured fallback when nothing has been cached yet.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

from .v3_math import price_from_tick

logger = logging.getLogger(__name__)


class OracleState(Enum):
    COLD = "cold"
    FRESH = "fresh"
    STALE = "stale"


class ReferencePriceOracle:
    """
    USD price of the reference asset with a fixed time-to-live.

    `pool_reader` is any object with an async `fetch_pool(address)` that
    returns a PoolInfo (see UniswapV3PoolStateBatcher).
    """

    def __init__(
        self,
        pool_reader,
        pool_address: str,
        reference_asset: str,
        reference_decimals: int = 18,
        usd_decimals: int = 6,
        ttl_seconds: float = 15 * 60,
        fallback_price: float = 1911.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.pool_reader = pool_reader
        self.pool_address = pool_address.lower()
        self.reference_asset = reference_asset.lower()
        self.reference_decimals = reference_decimals
        self.usd_decimals = usd_decimals
        self.ttl_seconds = ttl_seconds
        self.fallback_price = fallback_price
        self._clock = clock
        self._price: Optional[float] = None
        self._updated_at: Optional[float] = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def state(self) -> OracleState:
        if self._price is None or self._updated_at is None:
            return OracleState.COLD
        if self._clock() - self._updated_at < self.ttl_seconds:
            return OracleState.FRESH
        return OracleState.STALE

    @property
    def cached_price(self) -> Optional[float]:
        return self._price

    def price_from_pool_tick(self, tick: int, reference_is_token0: bool) -> float:
        """USD per reference asset for a reference/USD pool tick."""
        if reference_is_token0:
            return price_from_tick(tick, self.reference_decimals, self.usd_decimals)
        usd_in_reference = price_from_tick(tick, self.usd_decimals, self.reference_decimals)
        return 1.0 / usd_in_reference

    async def _read_price(self) -> float:
        pool = await self.pool_reader.fetch_pool(self.pool_address)
        price = self.price_from_pool_tick(pool.tick, pool.token0 == self.reference_asset)
        if not price > 0:
            raise ValueError(f"Non-positive reference price {price} at tick {pool.tick}")
        return price

    async def get_price(self) -> float:
        """Current reference asset price in USD."""
        if self.state is OracleState.FRESH:
            return self._price

        try:
            price = await self._read_price()
        except Exception as e:
            if self._price is not None:
                self.logger.warning(
                    f"Reference price refresh failed ({e}), using last known ${self._price:.2f}"
                )
                return self._price
            self.logger.warning(
                f"Reference price unavailable ({e}), using fallback ${self.fallback_price:.2f}"
            )
            return self.fallback_price

        self._price = price
        self._updated_at = self._clock()
        self.logger.info(f"Reference asset price updated: ${price:.2f}")
        return price
