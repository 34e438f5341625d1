"""
TokenCreated event fetcher.

Scans the token factories over a trailing block window only. Tokens created
during a downtime longer than the window are not picked up.
"""

import asyncio
import functools
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from eth_abi import decode
from hexbytes import HexBytes
from web3 import Web3

from ..core.storage.models import TokenRecord
from .base import BaseFetcher, FetchError, FetchResult

TOKEN_CREATED_TYPES = [
    "address",  # token
    "uint256",  # nonce
    "address",  # deployer
    "string",  # name
    "string",  # symbol
    "uint256",  # initial supply
    "address",
    "uint256",
]


def block_ranges(start_block: int, end_block: int, max_blocks: int) -> List[Tuple[int, int]]:
    """Inclusive sub-ranges of at most `max_blocks` blocks."""
    ranges = []
    current = start_block
    while current <= end_block:
        upper = min(current + max_blocks - 1, end_block)
        ranges.append((current, upper))
        current = upper + 1
    return ranges


def default_web3_factory(url: str, timeout: int = 30) -> Web3:
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": timeout}))


class TokenCreationFetcher(BaseFetcher):
    """Discovers new tokens from factory TokenCreated events."""

    def __init__(
        self,
        chain_config,
        protocol_config,
        web3_factory: Optional[Callable[[str], Web3]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        super().__init__(chain_config.CHAIN_NAME)
        self.rpc_urls = chain_config.rpc_urls
        self.seconds_per_block = chain_config.SECONDS_PER_BLOCK
        self.factories = [address.lower() for address in protocol_config.TOKEN_FACTORY_ADDRESSES]
        self.window_blocks = protocol_config.DISCOVERY_WINDOW_BLOCKS
        self.max_blocks_per_request = protocol_config.MAX_BLOCKS_PER_LOG_REQUEST
        self.token_decimals = protocol_config.FACTORY_TOKEN_DECIMALS
        self.event_topic = Web3.keccak(text=protocol_config.TOKEN_CREATED_EVENT).hex()
        if not self.event_topic.startswith("0x"):
            self.event_topic = "0x" + self.event_topic
        self.web3_factory = web3_factory or functools.partial(
            default_web3_factory, timeout=chain_config.RPC_TIMEOUT
        )
        self._clock = clock

    def validate_config(self) -> bool:
        return bool(self.rpc_urls) and self.window_blocks > 0 and self.max_blocks_per_request > 0

    async def _run_blocking(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def connect(self) -> Tuple[Web3, int]:
        """
        First RPC provider that answers the head block query.

        Raises:
            FetchError: If no provider answers
        """
        for url in self.rpc_urls:
            web3 = self.web3_factory(url)
            try:
                head = await self._run_blocking(lambda: web3.eth.block_number)
                self.logger.debug(f"Using RPC provider {url} at block {head}")
                return web3, int(head)
            except Exception as e:
                self.logger.warning(f"RPC provider {url} failed: {e}")
        raise FetchError(f"No RPC provider answered ({len(self.rpc_urls)} tried)")

    async def get_latest_block(self) -> int:
        _, head = await self.connect()
        return head

    def decode_log(self, log: Dict, factory: str, head_block: int, head_time: datetime) -> Optional[TokenRecord]:
        """Decode one TokenCreated log, None when the payload is malformed."""
        try:
            values = decode(TOKEN_CREATED_TYPES, bytes(HexBytes(log["data"])))
        except Exception as e:
            self.logger.warning(
                f"Error decoding TokenCreated event in tx {log.get('transactionHash')}: {e}"
            )
            return None

        token_address, _, deployer, name, symbol, supply = values[:6]
        block_number = log.get("blockNumber")
        created_at = None
        if block_number is not None:
            age = max(0, head_block - int(block_number)) * self.seconds_per_block
            created_at = head_time - timedelta(seconds=age)

        return TokenRecord(
            contract_address=token_address,
            name=name,
            symbol=symbol,
            decimals=self.token_decimals,
            total_supply=str(supply),
            factory=factory,
            deployer=deployer,
            created_block=int(block_number) if block_number is not None else None,
            created_at=created_at,
        )

    async def fetch_new_tokens(self, window_blocks: Optional[int] = None) -> FetchResult:
        """
        Fetch tokens created in the trailing block window across all factories.

        Returns:
            FetchResult whose data is a list of TokenRecord, one per address
        """
        try:
            web3, head = await self.connect()
        except FetchError as e:
            return FetchResult(success=False, data=[], error=str(e))

        window = window_blocks or self.window_blocks
        start_block = max(0, head - window)
        head_time = self._clock()
        ranges = block_ranges(start_block, head, self.max_blocks_per_request)

        tokens: Dict[str, TokenRecord] = {}
        failed_ranges = 0

        for factory in self.factories:
            found = 0
            for from_block, to_block in ranges:
                log_filter = {
                    "address": Web3.to_checksum_address(factory),
                    "topics": [self.event_topic],
                    "fromBlock": from_block,
                    "toBlock": to_block,
                }
                try:
                    logs = await self._run_blocking(web3.eth.get_logs, log_filter)
                except Exception as e:
                    failed_ranges += 1
                    self.logger.error(
                        f"Error fetching logs for factory {factory} ({from_block}-{to_block}): {e}"
                    )
                    continue

                for log in logs:
                    token = self.decode_log(log, factory, head, head_time)
                    if token is not None and token.contract_address not in tokens:
                        tokens[token.contract_address] = token
                        found += 1

            self.logger.info(f"Found {found} token creation events from factory {factory}")

        result = FetchResult(
            success=True,
            data=list(tokens.values()),
            fetched_blocks=head - start_block + 1,
            start_block=start_block,
            end_block=head,
            metadata={"factories": len(self.factories), "failed_ranges": failed_ranges},
        )
        self.log_result(result)
        return result
