"""
Base classes for RPC and HTTP data fetchers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Base exception for fetch-related errors."""
    pass


@dataclass
class FetchResult:
    """Result from fetch execution."""
    success: bool
    data: Any = None
    fetched_blocks: int = 0
    start_block: Optional[int] = None
    end_block: Optional[int] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}

    @property
    def failed(self) -> bool:
        """Check if fetch failed."""
        return not self.success


class BaseFetcher(ABC):
    """
    Abstract base class for data fetchers.

    KISS principle: each fetcher handles one data source.
    """

    def __init__(self, chain: str):
        """
        Initialize fetcher.

        Args:
            chain: Blockchain chain name (e.g., 'base')
        """
        self.chain = chain
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def validate_config(self) -> bool:
        """
        Validate fetcher configuration.

        Returns:
            bool: True if configuration is valid
        """
        pass

    def get_identifier(self) -> str:
        """Get unique identifier for this fetcher."""
        return f"{self.chain}_{self.__class__.__name__}"

    def log_result(self, result: FetchResult) -> None:
        """Log fetch result."""
        if result.success:
            if result.start_block is not None:
                self.logger.info(
                    f"Fetch completed: {result.fetched_blocks} blocks "
                    f"({result.start_block}-{result.end_block})"
                )
            else:
                self.logger.debug(f"Fetch completed: {result.metadata}")
        else:
            self.logger.error(f"Fetch failed: {result.error}")
