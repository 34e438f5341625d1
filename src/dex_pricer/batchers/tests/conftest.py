"""Test configuration for batchers."""
from typing import Callable, Dict, Optional, Tuple, Union
from unittest.mock import Mock

import pytest
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from ..base import BatchConfig
from ..multicall import AGGREGATE3_SELECTOR

WETH = "0x4200000000000000000000000000000000000006"
FACTORY = "0x33128a8fc17869897dce68ed026d694621f6fdfd"
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
POOL_1 = "0x" + "01" * 20
POOL_2 = "0x" + "02" * 20
ZERO = "0x" + "00" * 20

Responder = Union[bytes, Callable[[bytes], Optional[bytes]]]


class FakeNode:
    """
    In-memory eth_call endpoint that answers aggregate3 and direct calls.

    Responders are registered per (target, function signature). A responder
    is either fixed return data or a callable taking the encoded arguments;
    returning None makes the call fail.
    """

    def __init__(self):
        self.responders: Dict[Tuple[str, bytes], Responder] = {}
        self.aggregate_requests = 0
        self.direct_requests = 0
        self.fail_aggregate = False

    def on(self, target: str, signature: str, responder: Responder) -> None:
        selector = function_signature_to_4byte_selector(signature)
        self.responders[(target.lower(), selector)] = responder

    def _answer(self, target: str, data: bytes) -> Optional[bytes]:
        responder = self.responders.get((target.lower(), data[:4]))
        if responder is None:
            return None
        if callable(responder):
            return responder(data[4:])
        return responder

    def eth_call(self, tx, block_identifier="latest"):
        data = bytes(tx["data"])
        if data[:4] == AGGREGATE3_SELECTOR:
            self.aggregate_requests += 1
            if self.fail_aggregate:
                raise ValueError("execution reverted: aggregate3 rejected")
            (calls,) = decode(["(address,bool,bytes)[]"], data[4:])
            results = []
            for target, _, call_data in calls:
                answer = self._answer(target, bytes(call_data))
                results.append((answer is not None, answer or b""))
            return encode(["(bool,bytes)[]"], [results])

        self.direct_requests += 1
        answer = self._answer(tx["to"], data)
        if answer is None:
            raise ValueError("execution reverted")
        return answer


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def web3(node):
    mock = Mock()
    mock.eth.call.side_effect = node.eth_call
    mock.eth.block_number = 12_345_678
    return mock


@pytest.fixture
def batch_config():
    """No delays so retries and chunk pauses do not slow the suite."""
    return BatchConfig(batch_size=30, chunk_size=2000, chunk_delay=0, max_retries=3, retry_delay=0)
