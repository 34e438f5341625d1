"""
Configuration management for dex_pricer.

Use get_config() to access all configuration settings.

Example:
    from dex_pricer.config import get_config

    config = get_config()

    rpc_urls = config.chain.rpc_urls
    fee_tiers = config.protocols.FEE_TIERS
    quota = config.refresh.API_CALLS_PER_MINUTE
"""

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .database import DatabaseConfig
from .manager import ConfigManager, get_config, reload_config
from .price_api import PriceApiConfig
from .protocols import ProtocolConfig
from .refresh import RefreshConfig

__all__ = [
    "BaseConfig",
    "ConfigError",
    "ChainConfig",
    "ProtocolConfig",
    "DatabaseConfig",
    "RefreshConfig",
    "PriceApiConfig",
    "ConfigManager",
    "get_config",
    "reload_config",
]
