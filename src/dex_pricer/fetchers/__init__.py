"""
Data fetchers: factory TokenCreated logs over RPC and token prices over HTTP.
"""

from .base import BaseFetcher, FetchError, FetchResult
from .price_api import GeckoTerminalFetcher
from .token_creation import TokenCreationFetcher

__all__ = [
    'BaseFetcher',
    'FetchResult',
    'FetchError',
    'GeckoTerminalFetcher',
    'TokenCreationFetcher',
]
