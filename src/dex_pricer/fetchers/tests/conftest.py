"""Test configuration for fetchers."""
from unittest.mock import Mock

import pytest

from ...config import ChainConfig, PriceApiConfig, ProtocolConfig
from ...refresh.budget import RefreshBudget

FACTORY = "0x" + "fa" * 20


def api_response(status_code=200, payload=None, headers=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json = Mock(return_value=payload if payload is not None else {"data": []})
    response.text = text
    return response


def token_payload(*addresses, fdv="1000.5"):
    return {
        "data": [
            {
                "id": f"base_{address}",
                "type": "token",
                "attributes": {
                    "address": address,
                    "name": "Token",
                    "symbol": "TKN",
                    "decimals": 18,
                    "total_supply": "1000000000000000000000.0",
                    "price_usd": "0.25",
                    "fdv_usd": fdv,
                    "total_reserve_in_usd": "5000",
                    "volume_usd": {"h24": "123.4"},
                },
            }
            for address in addresses
        ]
    }


@pytest.fixture
def price_api_config():
    config = PriceApiConfig()
    config.PRICE_API_BASE_URL = "https://prices.test/api/v2"
    config.RATE_LIMIT_FALLBACK_DELAY = 5.0
    config.MAX_RATE_LIMIT_RETRIES = 2
    return config


@pytest.fixture
def budget():
    return RefreshBudget(quota=30, safety_margin=2, tokens_per_call=30)


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def chain_config():
    config = ChainConfig()
    config.RPC_URL = "http://primary.test"
    config.FALLBACK_RPC_URLS = ["http://backup.test"]
    config.SECONDS_PER_BLOCK = 2.0
    return config


@pytest.fixture
def protocol_config():
    config = ProtocolConfig()
    config.TOKEN_FACTORY_ADDRESSES = [FACTORY]
    config.DISCOVERY_WINDOW_BLOCKS = 100
    config.MAX_BLOCKS_PER_LOG_REQUEST = 40
    return config
