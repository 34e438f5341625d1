"""Tests for TokenCreated discovery."""
from datetime import datetime, timedelta, timezone

import pytest
from eth_abi import encode
from hexbytes import HexBytes

from ..token_creation import TOKEN_CREATED_TYPES, TokenCreationFetcher, block_ranges
from .conftest import FACTORY

HEAD = 1000
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
DEPLOYER = "0x" + "de" * 20


def creation_log(token, block_number, name="Token", symbol="TKN", supply=10**27):
    data = encode(
        TOKEN_CREATED_TYPES,
        [token, 1, DEPLOYER, name, symbol, supply, "0x" + "00" * 20, 0],
    )
    return {"data": HexBytes(data), "blockNumber": block_number, "transactionHash": "0x" + "ab" * 32}


class FakeEth:
    def __init__(self, head=HEAD, logs=None, down=False, failing_ranges=()):
        self.head = head
        self.logs = logs or []
        self.down = down
        self.failing_ranges = set(failing_ranges)
        self.filters = []

    @property
    def block_number(self):
        if self.down:
            raise OSError("connection refused")
        return self.head

    def get_logs(self, log_filter):
        self.filters.append(log_filter)
        if (log_filter["fromBlock"], log_filter["toBlock"]) in self.failing_ranges:
            raise ValueError("query returned more than 10000 results")
        return self.logs


class FakeWeb3:
    def __init__(self, eth):
        self.eth = eth


def make_fetcher(chain_config, protocol_config, providers):
    return TokenCreationFetcher(
        chain_config,
        protocol_config,
        web3_factory=lambda url: FakeWeb3(providers[url]),
        clock=lambda: NOW,
    )


def test_block_ranges():
    assert block_ranges(900, 1000, 40) == [(900, 939), (940, 979), (980, 1000)]
    assert block_ranges(5, 5, 10) == [(5, 5)]
    assert block_ranges(10, 5, 10) == []


class TestTokenCreationFetcher:

    def test_event_topic(self, chain_config, protocol_config):
        fetcher = make_fetcher(chain_config, protocol_config, {})

        assert fetcher.event_topic.startswith("0x")
        assert len(fetcher.event_topic) == 66

    def test_decode_log(self, chain_config, protocol_config):
        fetcher = make_fetcher(chain_config, protocol_config, {})

        token = fetcher.decode_log(creation_log(TOKEN_A, HEAD - 10), FACTORY, HEAD, NOW)

        assert token.contract_address == TOKEN_A
        assert token.name == "Token"
        assert token.symbol == "TKN"
        assert token.decimals == 18
        assert token.total_supply == str(10**27)
        assert token.deployer == DEPLOYER
        assert token.factory == FACTORY
        assert token.created_block == HEAD - 10
        assert token.created_at == NOW - timedelta(seconds=20)

    def test_malformed_log_is_dropped(self, chain_config, protocol_config):
        fetcher = make_fetcher(chain_config, protocol_config, {})

        assert fetcher.decode_log({"data": "0x1234", "blockNumber": 1}, FACTORY, HEAD, NOW) is None

    @pytest.mark.asyncio
    async def test_fetch_new_tokens(self, chain_config, protocol_config):
        eth = FakeEth(logs=[creation_log(TOKEN_A, 950), creation_log(TOKEN_B, 990)])
        fetcher = make_fetcher(chain_config, protocol_config, {"http://primary.test": eth})

        result = await fetcher.fetch_new_tokens()

        assert result.success
        assert sorted(t.contract_address for t in result.data) == [TOKEN_A, TOKEN_B]
        assert (result.start_block, result.end_block) == (900, 1000)
        # the same logs come back for every sub-range and are deduplicated
        assert len(eth.filters) == 3
        assert {(f["fromBlock"], f["toBlock"]) for f in eth.filters} == {(900, 939), (940, 979), (980, 1000)}
        assert eth.filters[0]["topics"] == [fetcher.event_topic]

    @pytest.mark.asyncio
    async def test_falls_back_to_next_provider(self, chain_config, protocol_config):
        providers = {
            "http://primary.test": FakeEth(down=True),
            "http://backup.test": FakeEth(logs=[creation_log(TOKEN_A, 999)]),
        }
        fetcher = make_fetcher(chain_config, protocol_config, providers)

        result = await fetcher.fetch_new_tokens()

        assert result.success
        assert [t.contract_address for t in result.data] == [TOKEN_A]
        assert providers["http://primary.test"].filters == []

    @pytest.mark.asyncio
    async def test_all_providers_down(self, chain_config, protocol_config):
        providers = {
            "http://primary.test": FakeEth(down=True),
            "http://backup.test": FakeEth(down=True),
        }
        fetcher = make_fetcher(chain_config, protocol_config, providers)

        result = await fetcher.fetch_new_tokens()

        assert result.success is False
        assert result.data == []

    @pytest.mark.asyncio
    async def test_failed_range_is_skipped(self, chain_config, protocol_config):
        eth = FakeEth(logs=[creation_log(TOKEN_A, 999)], failing_ranges=[(900, 939)])
        fetcher = make_fetcher(chain_config, protocol_config, {"http://primary.test": eth})

        result = await fetcher.fetch_new_tokens()

        assert result.success
        assert [t.contract_address for t in result.data] == [TOKEN_A]
        assert result.metadata["failed_ranges"] == 1

    @pytest.mark.asyncio
    async def test_window_override(self, chain_config, protocol_config):
        eth = FakeEth()
        fetcher = make_fetcher(chain_config, protocol_config, {"http://primary.test": eth})

        result = await fetcher.fetch_new_tokens(window_blocks=10)

        assert result.start_block == 990
        assert len(eth.filters) == 1
