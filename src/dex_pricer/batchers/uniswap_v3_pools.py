"""
Uniswap V3 style pool discovery and pool state batch fetchers.

Discovery asks each registry for the pool of every (token, reference asset,
fee tier) combination in both argument orderings, since the caller does not
know the canonical ordering in advance. State fetching reads token0, token1,
fee, liquidity and slot0 for the union of discovered pools.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple, Union

from web3 import Web3

from ..pricing.pool_types import PoolInfo
from .base import BatchConfig, BatchResult
from .errors import BatchError
from .multicall import Call, CallResult, MulticallBatcher

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

GET_POOL_SIGNATURE = "getPool(address,address,uint24)"
SLOT0_OUTPUT_TYPES = ("uint160", "int24", "uint16", "uint16", "uint16", "uint8", "bool")

POOL_STATE_CALLS = (
    ("token0", "token0()", ("address",)),
    ("token1", "token1()", ("address",)),
    ("fee", "fee()", ("uint24",)),
    ("liquidity", "liquidity()", ("uint128",)),
    ("slot0", "slot0()", SLOT0_OUTPUT_TYPES),
)


class UniswapV3PoolDiscoveryBatcher(MulticallBatcher):
    """
    Finds the pools pairing each token with the reference asset.

    For a batch of N tokens, R registries and F fee tiers this issues
    N * R * F * 2 getPool lookups, chunked by the multicall chunk size.
    """

    def __init__(
        self,
        web3: Web3,
        reference_asset: str,
        registries: Sequence[Tuple[str, str]],
        fee_tiers: Sequence[int],
        config: Optional[BatchConfig] = None,
        multicall_address: Optional[str] = None,
    ):
        kwargs = {"multicall_address": multicall_address} if multicall_address else {}
        super().__init__(web3, config, **kwargs)
        self.reference_asset = reference_asset.lower()
        self.registries = [(label, factory.lower()) for label, factory in registries]
        self.fee_tiers = list(fee_tiers)

    def _build_calls(
        self, tokens: List[str]
    ) -> Tuple[List[Call], List[Tuple[str, str, str, int]]]:
        """Build getPool calls plus a parallel list of (token, dex, factory, fee) keys."""
        calls: List[Call] = []
        keys: List[Tuple[str, str, str, int]] = []

        for token in tokens:
            for label, factory in self.registries:
                for fee in self.fee_tiers:
                    for token_a, token_b in (
                        (token, self.reference_asset),
                        (self.reference_asset, token),
                    ):
                        calls.append(
                            Call(
                                target=factory,
                                signature=GET_POOL_SIGNATURE,
                                output_types=("address",),
                                args=(
                                    Web3.to_checksum_address(token_a),
                                    Web3.to_checksum_address(token_b),
                                    fee,
                                ),
                            )
                        )
                        keys.append((token, label, factory, fee))

        return calls, keys

    def _collect_pools(
        self,
        tokens: List[str],
        keys: List[Tuple[str, str, str, int]],
        results: List[CallResult],
    ) -> Tuple[Dict[str, List[str]], Dict[str, PoolInfo]]:
        token_pools: Dict[str, List[str]] = {token: [] for token in tokens}
        pools: Dict[str, PoolInfo] = {}

        for (token, label, factory, fee), result in zip(keys, results):
            if not result.success or not result.value:
                continue
            pool_address = str(result.value).lower()
            if pool_address == ZERO_ADDRESS:
                continue

            if pool_address not in token_pools[token]:
                token_pools[token].append(pool_address)

            if pool_address not in pools:
                token0, token1 = sorted((token, self.reference_asset))
                pools[pool_address] = PoolInfo(
                    pool_address=pool_address,
                    token0=token0,
                    token1=token1,
                    fee=fee,
                    dex=label,
                    factory=factory,
                )

        return token_pools, pools

    async def batch_call(
        self, addresses: List[str], block_identifier: Union[int, str] = "latest"
    ) -> BatchResult:
        """
        Discover pools for a batch of token addresses.

        Returns:
            BatchResult whose data holds `token_pools` (token -> pool
            addresses) and `pools` (pool address -> PoolInfo skeleton)
        """
        try:
            tokens = self._validate_addresses(addresses)
            if not tokens:
                return BatchResult(success=False, data={}, error="No valid token addresses provided")

            calls, keys = self._build_calls(tokens)
            self.logger.debug(
                f"Discovering pools for {len(tokens)} tokens with {len(calls)} getPool lookups"
            )
            results = await self.aggregate(calls, block_identifier)
            token_pools, pools = self._collect_pools(tokens, keys, results)

            found = sum(1 for pool_list in token_pools.values() if pool_list)
            self.logger.info(
                f"Discovered {len(pools)} pools for {found}/{len(tokens)} tokens"
            )

            return BatchResult(
                success=True,
                data={"token_pools": token_pools, "pools": pools},
                timestamp=datetime.now(timezone.utc),
            )

        except Exception as e:
            self.logger.error(f"Pool discovery batch call failed: {e}")
            return BatchResult(success=False, data={}, error=str(e))


class UniswapV3PoolStateBatcher(MulticallBatcher):
    """Reads token ordering, fee, liquidity and slot0 for a set of pools."""

    def _build_calls(self, pools: List[str]) -> List[Call]:
        return [
            Call(target=pool, signature=signature, output_types=output_types)
            for pool in pools
            for _, signature, output_types in POOL_STATE_CALLS
        ]

    def _decode_pool(
        self,
        pool_address: str,
        results: List[CallResult],
        skeleton: Optional[PoolInfo],
    ) -> Optional[PoolInfo]:
        token0_result, token1_result, fee_result, liquidity_result, slot0_result = results

        token0 = str(token0_result.value).lower() if token0_result.success else None
        token1 = str(token1_result.value).lower() if token1_result.success else None
        if skeleton is not None:
            token0 = token0 or skeleton.token0
            token1 = token1 or skeleton.token1
        if not token0 or not token1:
            self.logger.debug(f"Pool {pool_address} returned no token ordering, dropping")
            return None

        fee = fee_result.value if fee_result.success else (skeleton.fee if skeleton else 0)
        liquidity = int(liquidity_result.value) if liquidity_result.success else 0

        sqrt_price_x96, tick = 0, None
        if slot0_result.success:
            sqrt_price_x96, tick = int(slot0_result.value[0]), int(slot0_result.value[1])

        return PoolInfo(
            pool_address=pool_address,
            token0=token0,
            token1=token1,
            fee=int(fee),
            dex=skeleton.dex if skeleton else "",
            factory=skeleton.factory if skeleton else "",
            liquidity=liquidity,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
        )

    async def batch_call(
        self,
        addresses: List[str],
        block_identifier: Union[int, str] = "latest",
        skeletons: Optional[Dict[str, PoolInfo]] = None,
    ) -> BatchResult:
        """
        Fetch state for a set of pools.

        Args:
            addresses: Pool addresses
            block_identifier: Block to call at
            skeletons: Discovery records supplying dex label and fallback ordering

        Returns:
            BatchResult whose data maps pool address to a populated PoolInfo
        """
        try:
            pools = self._validate_addresses(addresses)
            if not pools:
                return BatchResult(success=True, data={}, timestamp=datetime.now(timezone.utc))

            skeletons = skeletons or {}
            results = await self.aggregate(self._build_calls(pools), block_identifier)

            width = len(POOL_STATE_CALLS)
            pool_data: Dict[str, PoolInfo] = {}
            for i, pool_address in enumerate(pools):
                pool = self._decode_pool(
                    pool_address,
                    results[i * width : (i + 1) * width],
                    skeletons.get(pool_address),
                )
                if pool is not None:
                    pool_data[pool_address] = pool

            self.logger.debug(f"Fetched state for {len(pool_data)}/{len(pools)} pools")

            return BatchResult(
                success=True,
                data=pool_data,
                timestamp=datetime.now(timezone.utc),
            )

        except Exception as e:
            self.logger.error(f"Pool state batch call failed: {e}")
            return BatchResult(success=False, data={}, error=str(e))

    async def fetch_pool(
        self, pool_address: str, block_identifier: Union[int, str] = "latest"
    ) -> PoolInfo:
        """
        Fetch one pool's state.

        Raises:
            BatchError: If the pool state or its tick could not be read
        """
        result = await self.batch_call([pool_address], block_identifier)
        if not result.success:
            raise BatchError(f"Failed to read pool {pool_address}: {result.error}")

        pool = result.data.get(pool_address.lower())
        if pool is None or not pool.has_price_state:
            raise BatchError(f"Pool {pool_address} returned no price state")
        return pool
