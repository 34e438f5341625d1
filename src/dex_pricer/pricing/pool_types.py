"""
Core types for pool discovery and pricing.

Pools are ephemeral: they are rebuilt on every discovery/refresh pass and
only folded into the owning token's market record.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class PoolInfo:
    """
    Concentrated-liquidity pool pairing a token with the reference asset.

    Attributes:
        pool_address: Pool contract address (lower-case)
        token0: First token address in the canonical ordering
        token1: Second token address in the canonical ordering
        fee: Fee tier in hundredths of a basis point (500 = 0.05%)
        dex: Label of the registry the pool was found in
        factory: Registry contract address
        liquidity: In-range liquidity as an arbitrary-precision integer
        sqrt_price_x96: Encoded square-root price (Q64.96)
        tick: Current tick, None when the price state could not be read
    """

    pool_address: str
    token0: str
    token1: str
    fee: int
    dex: str = ""
    factory: str = ""
    liquidity: int = 0
    sqrt_price_x96: int = 0
    tick: Optional[int] = None

    @property
    def has_price_state(self) -> bool:
        return self.tick is not None

    def contains(self, token: str) -> bool:
        return token.lower() in (self.token0, self.token1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_address": self.pool_address,
            "token0": self.token0,
            "token1": self.token1,
            "fee": self.fee,
            "dex": self.dex,
            "factory": self.factory,
            # decimal string so wide integers survive serialization
            "liquidity": str(self.liquidity),
            "sqrt_price_x96": str(self.sqrt_price_x96),
            "tick": self.tick,
        }


@dataclass
class TokenMetadata:
    """ERC20 metadata with the defaults used when a read fails."""

    address: str
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    total_supply: str = "0"

    @classmethod
    def from_dict(cls, address: str, data: Optional[Dict[str, Any]]) -> "TokenMetadata":
        data = data or {}
        return cls(
            address=address.lower(),
            name=data.get("name") or "",
            symbol=data.get("symbol") or "",
            decimals=int(data.get("decimals", 18)),
            total_supply=str(data.get("total_supply") or "0"),
        )
