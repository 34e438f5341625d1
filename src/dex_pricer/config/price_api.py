"""
External price API configuration for dex_pricer.
"""

from dataclasses import dataclass

from .base import BaseConfig


@dataclass
class PriceApiConfig(BaseConfig):
    """GeckoTerminal-style price API settings."""

    PRICE_API_BASE_URL: str = BaseConfig.get_env(
        "PRICE_API_BASE_URL", "https://api.geckoterminal.com/api/v2"
    )
    PRICE_API_NETWORK: str = BaseConfig.get_env("PRICE_API_NETWORK", "base")
    PRICE_API_TIMEOUT: int = BaseConfig.get_env_int("PRICE_API_TIMEOUT", 30)
    RATE_LIMIT_FALLBACK_DELAY: float = BaseConfig.get_env_float(
        "RATE_LIMIT_FALLBACK_DELAY", 60.0
    )
    MAX_RATE_LIMIT_RETRIES: int = BaseConfig.get_env_int("MAX_RATE_LIMIT_RETRIES", 2)

    @property
    def headers(self) -> dict:
        return {"Accept": "application/json"}

    def multi_token_url(self, addresses) -> str:
        """URL of the multi-token endpoint for a batch of addresses."""
        joined = ",".join(addresses)
        return (
            f"{self.PRICE_API_BASE_URL.rstrip('/')}/networks/"
            f"{self.PRICE_API_NETWORK}/tokens/multi/{joined}"
        )
