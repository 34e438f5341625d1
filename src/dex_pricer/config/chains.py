"""
Chain-specific configuration for dex_pricer.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .base import BaseConfig


@dataclass
class ChainConfig(BaseConfig):
    """Chain configuration for the network being priced."""

    CHAIN_NAME: str = BaseConfig.get_env("CHAIN_NAME", "base")
    CHAIN_ID: int = BaseConfig.get_env_int("CHAIN_ID", 8453)

    # Primary RPC URL followed by ordered fallbacks
    RPC_URL: str = BaseConfig.get_env("BASE_RPC_URL", "https://mainnet.base.org")
    FALLBACK_RPC_URLS: List[str] = field(
        default_factory=lambda: BaseConfig.get_env_list(
            "FALLBACK_RPC_URLS",
            [
                "https://base-mainnet.public.blastapi.io",
                "https://rpc.ankr.com/base",
            ],
        )
    )
    RPC_TIMEOUT: int = BaseConfig.get_env_int("RPC_TIMEOUT", 30)

    # ~2s block time on Base
    SECONDS_PER_BLOCK: float = BaseConfig.get_env_float("SECONDS_PER_BLOCK", 2.0)

    # Well-known contracts
    MULTICALL3_ADDRESS: str = BaseConfig.get_env(
        "MULTICALL3_ADDRESS", "0xcA11bde05977b3631167028862bE2a173976CA11"
    )
    REFERENCE_ASSET_ADDRESS: str = BaseConfig.get_env(
        "REFERENCE_ASSET_ADDRESS", "0x4200000000000000000000000000000000000006"
    )  # WETH
    REFERENCE_ASSET_DECIMALS: int = BaseConfig.get_env_int("REFERENCE_ASSET_DECIMALS", 18)
    USD_ASSET_ADDRESS: str = BaseConfig.get_env(
        "USD_ASSET_ADDRESS", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
    )  # USDC
    USD_ASSET_DECIMALS: int = BaseConfig.get_env_int("USD_ASSET_DECIMALS", 6)
    REFERENCE_POOL_ADDRESS: str = BaseConfig.get_env(
        "REFERENCE_POOL_ADDRESS", "0x4C36388bE6F416A29C8d8Eee81C771cE6bE14B18"
    )  # WETH/USDC 0.05%

    @property
    def rpc_urls(self) -> List[str]:
        """Primary RPC URL followed by the fallbacks, without duplicates."""
        urls: List[str] = []
        for url in [self.RPC_URL, *self.FALLBACK_RPC_URLS]:
            if url and url not in urls:
                urls.append(url)
        return urls

    @property
    def reference_pool(self) -> Dict[str, object]:
        """Settings for the pool the reference asset is priced from."""
        return {
            "pool_address": self.REFERENCE_POOL_ADDRESS.lower(),
            "reference_asset": self.REFERENCE_ASSET_ADDRESS.lower(),
            "reference_decimals": self.REFERENCE_ASSET_DECIMALS,
            "usd_asset": self.USD_ASSET_ADDRESS.lower(),
            "usd_decimals": self.USD_ASSET_DECIMALS,
        }
