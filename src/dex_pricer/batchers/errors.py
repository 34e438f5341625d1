"""
Error handling utilities for batch calling operations.

This module provides specialized exception classes and error handling
utilities for robust batch calling operations.
"""

from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class BatchError(Exception):
    """Base exception for batch operations."""
    pass


class RateLimitError(BatchError):
    """Raised when rate limit is hit."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class NetworkError(BatchError):
    """Raised when network-related errors occur."""
    pass


class ContractError(BatchError):
    """Raised when contract-related errors occur."""
    pass


class ValidationError(BatchError):
    """Raised when input validation fails."""
    pass


class ErrorHandler:
    """
    Centralized error handling for batch operations.

    Provides classification, logging, and recovery strategies
    for various types of errors encountered during batch calls.
    """

    MAX_DELAY = 60

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify_error(self, error: Exception) -> str:
        """
        Classify an error into a category for appropriate handling.

        Args:
            error: Exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, RateLimitError):
            return 'rate_limit'
        if isinstance(error, ValidationError):
            return 'validation'
        if isinstance(error, ContractError):
            return 'contract'
        if isinstance(error, NetworkError):
            return 'network'

        return self.classify_message(str(error))

    @staticmethod
    def classify_message(message: str) -> str:
        """Category of an error from its message text alone."""
        error_str = message.lower()

        # Rate limiting errors
        if any(keyword in error_str for keyword in ['rate limit', 'too many requests', '429']):
            return 'rate_limit'

        # Network connectivity errors
        if any(keyword in error_str for keyword in ['connection', 'timeout', 'timed out', 'network', 'dns']):
            return 'network'

        # Contract execution errors
        if any(keyword in error_str for keyword in ['revert', 'execution reverted', 'out of gas']):
            return 'contract'

        # Validation errors
        if any(keyword in error_str for keyword in ['invalid', 'bad request', '400']):
            return 'validation'

        return 'unknown'

    def should_retry(self, error: Exception, attempt: int, max_retries: int) -> bool:
        """
        Determine if an error should trigger a retry.

        Args:
            error: Exception that occurred
            attempt: Current attempt number (0-based)
            max_retries: Maximum number of retries allowed

        Returns:
            True if operation should be retried
        """
        if attempt >= max_retries:
            return False

        error_category = self.classify_error(error)

        # Validation and contract errors are deterministic
        if error_category in ['validation', 'contract']:
            return False

        return error_category in ['network', 'rate_limit', 'unknown']

    def get_retry_delay(self, error: Exception, attempt: int) -> float:
        """
        Calculate appropriate retry delay based on error type and attempt.

        Args:
            error: Exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds before retry
        """
        # Provider hint wins when present
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return min(float(error.retry_after), self.MAX_DELAY)

        error_category = self.classify_error(error)

        # Base exponential backoff
        base_delay = min(2 ** attempt, self.MAX_DELAY)

        if error_category == 'rate_limit':
            return min(base_delay * 2, self.MAX_DELAY)

        if error_category == 'network':
            return base_delay

        return min(base_delay * 1.5, self.MAX_DELAY)

    def log_error(self, error: Exception, context: Dict[str, Any]):
        """
        Log error with appropriate level and context.

        Args:
            error: Exception to log
            context: Additional context for logging
        """
        error_category = self.classify_error(error)

        log_data = {
            'error_type': type(error).__name__,
            'error_category': error_category,
            'error_message': str(error),
            **context
        }

        if error_category == 'validation':
            self.logger.warning(f"Validation error occurred: {error}", extra=log_data)
        elif error_category == 'contract':
            self.logger.error(f"Contract execution failed: {error}", extra=log_data)
        elif error_category == 'rate_limit':
            self.logger.info(f"Rate limit encountered: {error}", extra=log_data)
        else:
            self.logger.warning(f"Batch operation error: {error}", extra=log_data)


def _retry_after_hint(error: Exception) -> Optional[float]:
    """Retry-After seconds from an HTTP error's response, if the provider sent one."""
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None) or {}
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def rpc_error(message: str, error: Exception) -> BatchError:
    """
    Typed batch error for a failed RPC request.

    Rate limit responses become RateLimitError carrying the provider's
    Retry-After hint, reverts become ContractError and rejected requests
    ValidationError. Anything else is treated as a network failure.
    """
    if isinstance(error, BatchError):
        return error

    category = ErrorHandler.classify_message(str(error))
    if category == 'rate_limit':
        return RateLimitError(message, retry_after=_retry_after_hint(error))
    if category == 'contract':
        return ContractError(message)
    if category == 'validation':
        return ValidationError(message)
    return NetworkError(message)
