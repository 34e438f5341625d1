"""
Refresh scheduling and rate budget configuration for dex_pricer.
"""

from dataclasses import dataclass

from .base import BaseConfig, ConfigError


@dataclass
class RefreshConfig(BaseConfig):
    """Budgets, batch sizes and job intervals for the refresh service."""

    # External price API budget
    API_CALLS_PER_MINUTE: int = BaseConfig.get_env_int("API_CALLS_PER_MINUTE", 30)
    ROTATION_SAFETY_MARGIN: int = BaseConfig.get_env_int("ROTATION_SAFETY_MARGIN", 2)
    TOKENS_PER_API_CALL: int = BaseConfig.get_env_int("TOKENS_PER_API_CALL", 30)
    PRIORITY_TOKEN_COUNT: int = BaseConfig.get_env_int("PRIORITY_TOKEN_COUNT", 10)
    BUDGET_WINDOW_SECONDS: float = BaseConfig.get_env_float("BUDGET_WINDOW_SECONDS", 60.0)

    # On-chain enrichment
    TOKEN_BATCH_SIZE: int = BaseConfig.get_env_int("TOKEN_BATCH_SIZE", 30)
    MULTICALL_CHUNK_SIZE: int = BaseConfig.get_env_int("MULTICALL_CHUNK_SIZE", 2000)
    MULTICALL_CHUNK_DELAY: float = BaseConfig.get_env_float("MULTICALL_CHUNK_DELAY", 2.0)
    ENRICHMENT_BATCH_DELAY: float = BaseConfig.get_env_float("ENRICHMENT_BATCH_DELAY", 3.0)

    # Price API fan-out window
    FAN_OUT: int = BaseConfig.get_env_int("FAN_OUT", 3)
    FAN_OUT_COOLDOWN: float = BaseConfig.get_env_float("FAN_OUT_COOLDOWN", 0.5)

    # Reference asset price cache
    REFERENCE_PRICE_TTL: float = BaseConfig.get_env_float("REFERENCE_PRICE_TTL", 15 * 60.0)
    REFERENCE_PRICE_FALLBACK_USD: float = BaseConfig.get_env_float(
        "REFERENCE_PRICE_FALLBACK_USD", 1911.0
    )

    # Job intervals (seconds)
    DISCOVERY_INTERVAL: float = BaseConfig.get_env_float("DISCOVERY_INTERVAL", 60.0)
    PRIORITY_INTERVAL: float = BaseConfig.get_env_float("PRIORITY_INTERVAL", 2.0)
    ROTATION_INTERVAL: float = BaseConfig.get_env_float("ROTATION_INTERVAL", 10.0)
    RANKING_INTERVAL: float = BaseConfig.get_env_float("RANKING_INTERVAL", 3600.0)
    ENRICHMENT_INTERVAL: float = BaseConfig.get_env_float("ENRICHMENT_INTERVAL", 60.0)

    def _validate_config(self):
        super()._validate_config()
        if self.API_CALLS_PER_MINUTE <= 0:
            raise ConfigError("API_CALLS_PER_MINUTE must be positive")
        if not 0 <= self.ROTATION_SAFETY_MARGIN < self.API_CALLS_PER_MINUTE:
            raise ConfigError(
                "ROTATION_SAFETY_MARGIN must be between 0 and API_CALLS_PER_MINUTE"
            )
        if self.TOKENS_PER_API_CALL <= 0 or self.TOKEN_BATCH_SIZE <= 0:
            raise ConfigError("Batch sizes must be positive")
        if self.FAN_OUT <= 0:
            raise ConfigError("FAN_OUT must be positive")
        if not 0 < self.PRIORITY_TOKEN_COUNT <= self.TOKENS_PER_API_CALL:
            # the priority list is refreshed in a single API call
            raise ConfigError(
                f"PRIORITY_TOKEN_COUNT must be between 1 and TOKENS_PER_API_CALL ({self.TOKENS_PER_API_CALL})"
            )

    @property
    def rotation_threshold(self) -> int:
        """Calls per window after which the rotation pass stops spending."""
        return self.API_CALLS_PER_MINUTE - self.ROTATION_SAFETY_MARGIN

    @property
    def job_intervals(self) -> dict:
        return {
            "discovery": self.DISCOVERY_INTERVAL,
            "priority_refresh": self.PRIORITY_INTERVAL,
            "rotation_refresh": self.ROTATION_INTERVAL,
            "full_ranking": self.RANKING_INTERVAL,
            "onchain_enrichment": self.ENRICHMENT_INTERVAL,
            "budget_reset": self.BUDGET_WINDOW_SECONDS,
        }
