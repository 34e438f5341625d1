"""
Storage abstraction layer for dex_pricer.

Backends:
- PostgreSQL for the service (asyncpg pool)
- JSON for local runs and tests

Usage:
    from dex_pricer.core.storage import create_storage

    storage = create_storage(config.database)
    await storage.connect()

    await storage.upsert_market_records(records)
    top = await storage.get_top_by_market_cap(10)
"""

from .base import ConnectionError, DataError, StorageBase, StorageError, TokenStore
from .json_storage import JsonStorage
from .models import TokenMarketRecord, TokenRecord, normalize_address
from .postgres import PostgresStorage


def create_storage(database_config) -> TokenStore:
    """Build the backend selected by STORAGE_BACKEND."""
    if database_config.STORAGE_BACKEND == "json":
        return JsonStorage.from_config(database_config)
    return PostgresStorage.from_config(database_config)


__all__ = [
    "StorageBase",
    "StorageError",
    "ConnectionError",
    "DataError",
    "TokenStore",
    "TokenRecord",
    "TokenMarketRecord",
    "normalize_address",
    "PostgresStorage",
    "JsonStorage",
    "create_storage",
]
