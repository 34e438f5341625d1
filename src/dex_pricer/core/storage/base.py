"""
Base classes and interfaces for storage implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import logging

from .models import TokenMarketRecord, TokenRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage-related errors."""
    pass


class ConnectionError(StorageError):
    """Raised when connection to storage backend fails."""
    pass


class DataError(StorageError):
    """Raised when data operations fail."""
    pass


class StorageBase(ABC):
    """
    Abstract base class for storage implementations.
    All storage backends must implement these methods.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize storage backend with configuration.

        Args:
            config: Configuration dictionary for the storage backend
        """
        self.config = config
        self.is_connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the storage backend."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the storage backend."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the storage backend is healthy and accessible.

        Returns:
            bool: True if healthy, False otherwise
        """
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()


class TokenStorageInterface(ABC):
    """Interface for tracked-token storage operations."""

    @abstractmethod
    async def upsert_tokens(self, tokens: Sequence[TokenRecord]) -> int:
        """Insert or update tokens by contract address. Never deletes."""
        pass

    @abstractmethod
    async def list_token_addresses(self) -> List[str]:
        """All tracked token addresses."""
        pass


class MarketDataStorageInterface(ABC):
    """Interface for derived market record storage operations."""

    @abstractmethod
    async def upsert_market_records(self, records: Sequence[TokenMarketRecord]) -> int:
        """
        Insert or update market records by contract address.

        Fields left as None keep their stored value.
        """
        pass

    @abstractmethod
    async def get_market_record(self, address: str) -> Optional[TokenMarketRecord]:
        """Retrieve one market record."""
        pass

    @abstractmethod
    async def get_top_by_market_cap(self, limit: int) -> List[TokenMarketRecord]:
        """Records with a positive market cap, largest first."""
        pass

    @abstractmethod
    async def get_rotation_candidates(
        self, exclude: Sequence[str], limit: int
    ) -> List[str]:
        """
        Tracked tokens not in `exclude`, least recently updated first.

        Tokens that were never updated come before everything else.
        """
        pass

    @abstractmethod
    async def count_market_records(self) -> int:
        """Number of stored market records."""
        pass


class TokenStore(StorageBase, TokenStorageInterface, MarketDataStorageInterface):
    """A storage backend serving both tokens and market records."""
    pass
