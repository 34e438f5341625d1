"""
Configuration manager for dex_pricer.

This module provides a centralized way to access all configuration settings
across the application. It combines all configuration classes into a single
easy-to-use interface.
"""

import logging
from typing import Dict, Any, Optional
from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .database import DatabaseConfig
from .price_api import PriceApiConfig
from .protocols import ProtocolConfig
from .refresh import RefreshConfig

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Centralized configuration manager that combines all configuration classes.

    This class provides easy access to all configuration settings and ensures
    that configurations are properly initialized and validated.
    """

    def __init__(self, environment: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            environment: Override the environment (local, dev, staging, production)
        """
        self._environment = environment
        self._base_config = None
        self._chain_config = None
        self._protocol_config = None
        self._database_config = None
        self._refresh_config = None
        self._price_api_config = None
        self._initialize_configs()

    def _initialize_configs(self):
        """Initialize all configuration objects."""
        try:
            self._base_config = BaseConfig()
            if self._environment:
                self._base_config.ENVIRONMENT = self._environment
                self._base_config._validate_config()

            self._chain_config = ChainConfig()
            self._protocol_config = ProtocolConfig()
            self._database_config = DatabaseConfig()
            self._refresh_config = RefreshConfig()
            self._price_api_config = PriceApiConfig()

            logger.info(f"Configuration initialized for environment: {self.environment}")

        except Exception as e:
            logger.error(f"Failed to initialize configuration: {e}")
            raise ConfigError(f"Configuration initialization failed: {e}")

    @property
    def environment(self) -> str:
        """Get current environment."""
        return self._base_config.ENVIRONMENT

    @property
    def base(self) -> BaseConfig:
        return self._base_config

    @property
    def chain(self) -> ChainConfig:
        return self._chain_config

    @property
    def protocols(self) -> ProtocolConfig:
        return self._protocol_config

    @property
    def database(self) -> DatabaseConfig:
        return self._database_config

    @property
    def refresh(self) -> RefreshConfig:
        return self._refresh_config

    @property
    def price_api(self) -> PriceApiConfig:
        return self._price_api_config

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigError: If any configuration is invalid
        """
        try:
            if not self.chain.rpc_urls:
                raise ConfigError("No RPC URL configured")

            if not self.protocols.POOL_REGISTRIES:
                raise ConfigError("No pool registries configured")

            if not self.protocols.FEE_TIERS:
                raise ConfigError("No fee tiers configured")

            if not self.protocols.TOKEN_FACTORY_ADDRESSES:
                logger.warning("No token factory addresses configured, discovery will find nothing")

            if self.refresh.TOKENS_PER_API_CALL > 30:
                logger.warning(
                    f"TOKENS_PER_API_CALL={self.refresh.TOKENS_PER_API_CALL} exceeds "
                    f"the 30 addresses the multi-token endpoint accepts"
                )

            logger.info("Configuration validation successful")
            return True

        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigError(f"Configuration validation failed: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert all configurations to dictionary format."""
        return {
            "environment": self.environment,
            "base": self.base.to_dict() if self.base else {},
            "chain": self.chain.to_dict() if self.chain else {},
            "protocols": self.protocols.to_dict() if self.protocols else {},
            "database": self.database.to_dict() if self.database else {},
            "refresh": self.refresh.to_dict() if self.refresh else {},
            "price_api": self.price_api.to_dict() if self.price_api else {},
        }

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment})"


# Global configuration manager instance
_config_manager = None


def get_config(environment: Optional[str] = None, force_reload: bool = False) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        environment: Override environment
        force_reload: Force reload of configuration

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(environment=environment)
        _config_manager.validate_configuration()

    return _config_manager


def reload_config(environment: Optional[str] = None) -> ConfigManager:
    """Reload the global configuration manager."""
    return get_config(environment=environment, force_reload=True)
