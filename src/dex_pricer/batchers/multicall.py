"""
Multicall3 aggregate3 encoding, decoding and chunked execution.

The encoder is stateless: callers keep their own mapping from the index of
a call back to the entity it describes. Results come back in input order.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from hexbytes import HexBytes
from web3 import Web3

from .base import BaseBatcher, BatchConfig
from .errors import BatchError, rpc_error

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"
AGGREGATE3_SIGNATURE = "aggregate3((address,bool,bytes)[])"
AGGREGATE3_SELECTOR = function_signature_to_4byte_selector(AGGREGATE3_SIGNATURE)


def _argument_types(signature: str) -> Tuple[str, ...]:
    inner = signature[signature.index("(") + 1 : signature.rindex(")")]
    return tuple(t.strip() for t in inner.split(",") if t.strip())


@dataclass
class Call:
    """One read-only contract call inside an aggregate."""

    target: str
    signature: str
    output_types: Tuple[str, ...]
    args: Tuple[Any, ...] = ()
    allow_failure: bool = True

    @property
    def call_data(self) -> bytes:
        selector = function_signature_to_4byte_selector(self.signature)
        arg_types = _argument_types(self.signature)
        if not arg_types:
            return selector
        return selector + encode(list(arg_types), list(self.args))


@dataclass
class CallResult:
    """Outcome of one call. `value` is None when `success` is False."""

    success: bool
    value: Any = None
    raw: bytes = field(default=b"", repr=False)


def encode_aggregate3(calls: Sequence[Call]) -> bytes:
    """Build aggregate3 calldata for a list of calls."""
    payload = [
        (to_checksum_address(call.target), call.allow_failure, call.call_data)
        for call in calls
    ]
    return AGGREGATE3_SELECTOR + encode(["(address,bool,bytes)[]"], [payload])


def decode_call_result(call: Call, success: bool, return_data: bytes) -> CallResult:
    """Decode one return value; undecodable data is reported as a failure."""
    if not success or not return_data:
        return CallResult(False, None, bytes(return_data or b""))
    try:
        values = decode(list(call.output_types), bytes(return_data))
    except Exception:
        return CallResult(False, None, bytes(return_data))
    value = values[0] if len(values) == 1 else tuple(values)
    return CallResult(True, value, bytes(return_data))


def decode_aggregate3(calls: Sequence[Call], response: bytes) -> List[CallResult]:
    """
    Decode an aggregate3 response into one CallResult per call.

    Raises:
        BatchError: If the response shape does not match the calls
    """
    try:
        (results,) = decode(["(bool,bytes)[]"], bytes(response))
    except Exception as e:
        raise BatchError(f"Malformed aggregate3 response: {e}")

    if len(results) != len(calls):
        raise BatchError(
            f"aggregate3 returned {len(results)} results for {len(calls)} calls"
        )

    return [
        decode_call_result(call, success, return_data)
        for call, (success, return_data) in zip(calls, results)
    ]


class MulticallBatcher(BaseBatcher):
    """
    Batcher that collapses many contract reads into aggregate3 calls.

    Subclasses build the calls and interpret the results.
    """

    def __init__(
        self,
        web3: Web3,
        config: Optional[BatchConfig] = None,
        multicall_address: str = MULTICALL3_ADDRESS,
    ):
        super().__init__(web3, config)
        self.multicall_address = to_checksum_address(multicall_address)

    def _eth_call(self, data: bytes, to: str, block_identifier: Union[int, str]) -> bytes:
        try:
            return self.web3.eth.call(
                {"to": to, "data": HexBytes(data)}, block_identifier=block_identifier
            )
        except Exception as e:
            raise rpc_error(f"eth_call to {to} failed: {e}", e) from e

    async def _aggregate_chunk(
        self, calls: Sequence[Call], block_identifier: Union[int, str]
    ) -> List[CallResult]:
        async def _call():
            response = await self._run_blocking(
                self._eth_call, encode_aggregate3(calls), self.multicall_address, block_identifier
            )
            return decode_aggregate3(calls, response)

        return await self._retry_operation(_call)

    async def aggregate(
        self,
        calls: Sequence[Call],
        block_identifier: Union[int, str] = "latest",
        fallback_to_individual: bool = False,
    ) -> List[CallResult]:
        """
        Execute calls through aggregate3, chunked to `chunk_size` calls per request.

        A failed individual call never aborts the batch. A chunk whose
        aggregate request is rejected raises BatchError unless
        `fallback_to_individual` is set, in which case its calls are issued
        one by one.
        """
        if not calls:
            return []

        chunks = self._chunk(list(calls), self.config.chunk_size)
        results: List[CallResult] = []

        for index, chunk in enumerate(chunks):
            if index > 0 and self.config.chunk_delay > 0:
                await asyncio.sleep(self.config.chunk_delay)
            try:
                results.extend(await self._aggregate_chunk(chunk, block_identifier))
            except Exception as e:
                if not fallback_to_individual:
                    raise BatchError(
                        f"aggregate3 chunk {index + 1}/{len(chunks)} failed: {e}"
                    ) from e
                self.logger.warning(
                    f"aggregate3 chunk {index + 1}/{len(chunks)} failed ({e}), "
                    f"falling back to {len(chunk)} individual calls"
                )
                results.extend(await self.call_individually(chunk, block_identifier))

            self.logger.debug(f"Processed multicall chunk {index + 1}/{len(chunks)}")

        return results

    async def call_individually(
        self, calls: Sequence[Call], block_identifier: Union[int, str] = "latest"
    ) -> List[CallResult]:
        """Issue each call on its own; failures become failed CallResults."""
        results = []
        for call in calls:
            try:
                data = await self._run_blocking(
                    self._eth_call,
                    call.call_data,
                    to_checksum_address(call.target),
                    block_identifier,
                )
                results.append(decode_call_result(call, True, data))
            except Exception as e:
                self.logger.debug(f"Individual call {call.signature} on {call.target} failed: {e}")
                results.append(CallResult(False))
        return results
