"""
Protocol-specific configuration for dex_pricer.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from .base import BaseConfig


@dataclass
class ProtocolConfig(BaseConfig):
    """Pool registries, fee tiers and token-creation factories."""

    # (dex label, factory address)
    POOL_REGISTRIES: List[Tuple[str, str]] = field(
        default_factory=lambda: [
            ("uniswap_v3", "0x33128a8fC17869897dcE68Ed026d694621f6FDfD"),
        ]
    )

    # 0.01%, 0.05%, 0.3%, 1%
    FEE_TIERS: List[int] = field(default_factory=lambda: [100, 500, 3000, 10000])

    TOKEN_FACTORY_ADDRESSES: List[str] = field(
        default_factory=lambda: BaseConfig.get_env_list(
            "TOKEN_FACTORY_ADDRESSES",
            [
                "0xb51F74E6d8568119061f59Fd7f98824F1e666AC1",
                "0x9bd7dCc13c532F37F65B0bF078C8f83E037e7445",
                "0x05Dd3Dc91FAeFAf06499D8D7acecc5a7DecCD4be",
            ],
        )
    )
    TOKEN_CREATED_EVENT: str = (
        "TokenCreated(address,uint256,address,string,string,uint256,address,uint256)"
    )
    # Tokens deployed by the factories are always 18 decimals
    FACTORY_TOKEN_DECIMALS: int = 18

    DISCOVERY_WINDOW_BLOCKS: int = BaseConfig.get_env_int("DISCOVERY_WINDOW_BLOCKS", 20000)
    MAX_BLOCKS_PER_LOG_REQUEST: int = BaseConfig.get_env_int(
        "MAX_BLOCKS_PER_LOG_REQUEST", 10000
    )

    @property
    def registry_labels(self) -> dict:
        """Factory address (lower-case) to dex label."""
        return {address.lower(): label for label, address in self.POOL_REGISTRIES}
