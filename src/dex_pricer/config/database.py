"""
Database configuration for dex_pricer.
"""

from dataclasses import dataclass
from pathlib import Path

from .base import BaseConfig, ConfigError


@dataclass
class DatabaseConfig(BaseConfig):
    """Storage backend and connection settings."""

    # "postgres" or "json"
    STORAGE_BACKEND: str = BaseConfig.get_env("STORAGE_BACKEND", "postgres")

    # PostgreSQL Configuration
    POSTGRES_HOST: str = BaseConfig.get_env("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = BaseConfig.get_env_int("POSTGRES_PORT", 5432)
    POSTGRES_USER: str = BaseConfig.get_env("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = BaseConfig.get_env("POSTGRES_PASSWORD", "postgres")
    POSTGRES_DB: str = BaseConfig.get_env("POSTGRES_DB", "dex_pricer")

    # Pool settings
    MIN_CONNECTIONS: int = BaseConfig.get_env_int("MIN_CONNECTIONS", 2)
    MAX_CONNECTIONS: int = BaseConfig.get_env_int("MAX_CONNECTIONS", 10)
    CONNECTION_TIMEOUT: int = BaseConfig.get_env_int("CONNECTION_TIMEOUT", 30)
    COMMAND_TIMEOUT: int = BaseConfig.get_env_int("COMMAND_TIMEOUT", 60)

    # Table Naming
    TOKENS_TABLE: str = BaseConfig.get_env("TOKENS_TABLE", "tokens")
    MARKET_TABLE: str = BaseConfig.get_env("MARKET_TABLE", "token_market_data")

    JSON_STORE_FILE: str = BaseConfig.get_env("JSON_STORE_FILE", "token_store.json")

    def _validate_config(self):
        super()._validate_config()
        if self.STORAGE_BACKEND not in ("postgres", "json"):
            raise ConfigError(f"Invalid storage backend: {self.STORAGE_BACKEND}")

    @property
    def postgres_url(self) -> str:
        """Build PostgreSQL connection URL."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def json_store_path(self) -> Path:
        """Path of the JSON document store."""
        return self.DATA_DIR / self.JSON_STORE_FILE

    @property
    def pool_kwargs(self) -> dict:
        """Keyword arguments for asyncpg.create_pool."""
        return {
            "min_size": self.MIN_CONNECTIONS,
            "max_size": self.MAX_CONNECTIONS,
            "timeout": self.CONNECTION_TIMEOUT,
            "command_timeout": self.COMMAND_TIMEOUT,
        }
