"""
Base classes for blockchain batch calling.

This module provides abstract interfaces for batching read-only contract
calls to reduce RPC overhead. Blocking web3 calls are pushed to the default
executor so the event loop keeps serving the other scheduled jobs.
"""

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from web3 import Web3

from .errors import BatchError, ErrorHandler

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Result from a batch operation."""

    success: bool
    data: Dict[str, Any]
    block_number: Optional[int] = None
    timestamp: Optional[datetime] = None
    error: Optional[str] = None


@dataclass
class BatchConfig:
    """Configuration for batch operations."""

    batch_size: int = 30
    chunk_size: int = 2000
    chunk_delay: float = 2.0
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 30.0

    @classmethod
    def from_refresh_config(cls, refresh_config) -> "BatchConfig":
        return cls(
            batch_size=refresh_config.TOKEN_BATCH_SIZE,
            chunk_size=refresh_config.MULTICALL_CHUNK_SIZE,
            chunk_delay=refresh_config.MULTICALL_CHUNK_DELAY,
        )


class BaseBatcher(ABC):
    """
    Abstract base class for blockchain batch operations.

    Provides common functionality for batching RPC calls to reduce
    network overhead and improve performance.
    """

    def __init__(self, web3: Web3, config: Optional[BatchConfig] = None):
        self.web3 = web3
        self.config = config or BatchConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = ErrorHandler(self.logger)

    @abstractmethod
    async def batch_call(
        self, addresses: List[str], block_identifier: Union[int, str] = "latest"
    ) -> BatchResult:
        """
        Execute a batch call for the given addresses.

        Args:
            addresses: List of contract addresses to batch call
            block_identifier: Block to call at

        Returns:
            BatchResult with success status and data
        """
        pass

    def _chunk(self, items: List[Any], size: Optional[int] = None) -> List[List[Any]]:
        """Split items into chunks of `size` (defaults to batch_size)."""
        chunk_size = size or self.config.batch_size
        return [items[i : i + chunk_size] for i in range(0, len(items), chunk_size)]

    async def _run_blocking(self, func: Callable, *args, **kwargs) -> Any:
        """Run a blocking web3 call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def _retry_operation(self, operation, *args, **kwargs) -> Any:
        """Retry an operation with exponential backoff and intelligent error handling."""
        last_error = None

        for attempt in range(self.config.max_retries):
            try:
                return await operation(*args, **kwargs)
            except Exception as e:
                last_error = e

                self.error_handler.log_error(
                    e,
                    {
                        "attempt": attempt + 1,
                        "max_retries": self.config.max_retries,
                        "operation": operation.__name__
                        if hasattr(operation, "__name__")
                        else str(operation),
                    },
                )

                if not self.error_handler.should_retry(
                    e, attempt, self.config.max_retries
                ):
                    self.logger.info(f"Not retrying error: {e}")
                    raise

                if attempt == self.config.max_retries - 1:
                    raise

                delay = self.error_handler.get_retry_delay(e, attempt) * self.config.retry_delay
                self.logger.info(
                    f"Retrying in {delay}s... (attempt {attempt + 1}/{self.config.max_retries})"
                )
                await asyncio.sleep(delay)

        if last_error:
            raise last_error

    async def _get_current_block(self) -> int:
        """Get current block number."""
        try:
            return await self._run_blocking(lambda: self.web3.eth.block_number)
        except Exception as e:
            self.logger.error(f"Failed to get current block: {e}")
            raise BatchError(f"Failed to get current block: {e}")

    def _validate_addresses(self, addresses: List[str]) -> List[str]:
        """Validate addresses and normalize them to lower case, dropping invalid ones."""
        validated = []
        seen = set()
        for addr in addresses:
            try:
                normalized = Web3.to_checksum_address(addr).lower()
            except Exception as e:
                self.logger.warning(f"Invalid address {addr}: {e}")
                continue
            if normalized not in seen:
                seen.add(normalized)
                validated.append(normalized)
        return validated
