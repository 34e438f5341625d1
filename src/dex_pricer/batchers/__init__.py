"""
Blockchain batch calling utilities.

This package collapses many read-only contract calls into Multicall3
aggregate3 requests for token metadata, pool discovery and pool state.
"""

from .base import BaseBatcher, BatchConfig, BatchResult
from .erc20_metadata import ERC20MetadataBatcher
from .errors import (
    BatchError,
    ContractError,
    ErrorHandler,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from .multicall import Call, CallResult, MulticallBatcher, decode_aggregate3, encode_aggregate3
from .uniswap_v3_pools import (
    UniswapV3PoolDiscoveryBatcher,
    UniswapV3PoolStateBatcher,
)

__all__ = [
    'BaseBatcher',
    'BatchConfig',
    'BatchResult',
    'BatchError',
    'RateLimitError',
    'NetworkError',
    'ContractError',
    'ValidationError',
    'ErrorHandler',
    'Call',
    'CallResult',
    'MulticallBatcher',
    'encode_aggregate3',
    'decode_aggregate3',
    'ERC20MetadataBatcher',
    'UniswapV3PoolDiscoveryBatcher',
    'UniswapV3PoolStateBatcher',
]
