"""
Persisted record types.

Optional fields left as None mean "not provided by this writer": upserts
keep whatever value is already stored for them.
"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, Dict, Optional


def normalize_address(address: str) -> str:
    """Normalize address to lowercase."""
    return address.lower() if address else address


@dataclass
class TokenRecord:
    """A tracked token, created when first seen in a creation event."""

    contract_address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    total_supply: Optional[str] = None
    factory: Optional[str] = None
    deployer: Optional[str] = None
    created_block: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.contract_address = normalize_address(self.contract_address)
        self.factory = normalize_address(self.factory)
        self.deployer = normalize_address(self.deployer)

    def to_document(self) -> Dict[str, Any]:
        """Fields that carry a value, keyed by column name."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "TokenRecord":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in document.items() if k in names})

    @classmethod
    def column_names(cls):
        return [f.name for f in fields(cls)]


@dataclass
class TokenMarketRecord:
    """Derived price, liquidity and ranking data for one token."""

    contract_address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    total_supply: Optional[str] = None
    price_usd: Optional[float] = None
    volume_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    market_cap: Optional[float] = None
    fdv_usd: Optional[float] = None
    pool_count: Optional[int] = None
    main_dex: Optional[str] = None
    main_pool_address: Optional[str] = None
    main_pool_tick: Optional[int] = None
    is_priority: Optional[bool] = None
    source: Optional[str] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        self.contract_address = normalize_address(self.contract_address)

    def to_document(self) -> Dict[str, Any]:
        """Fields that carry a value, keyed by column name."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "TokenMarketRecord":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in document.items() if k in names})

    @classmethod
    def column_names(cls):
        return [f.name for f in fields(cls)]
