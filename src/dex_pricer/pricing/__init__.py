"""Pool types, tick math, price calculation and the reference price oracle."""

from .calculator import PriceCalculator, calculate_market_cap, select_main_pool
from .oracle import OracleState, ReferencePriceOracle
from .pool_types import PoolInfo, TokenMetadata
from .v3_math import price_from_tick, tick_to_price_ratio

__all__ = [
    "PoolInfo",
    "TokenMetadata",
    "PriceCalculator",
    "calculate_market_cap",
    "select_main_pool",
    "OracleState",
    "ReferencePriceOracle",
    "price_from_tick",
    "tick_to_price_ratio",
]
