"""Test configuration for refresh scheduling."""
from unittest.mock import Mock

import pytest
import pytest_asyncio

from ...config import PriceApiConfig
from ...core.storage.json_storage import JsonStorage
from ...core.storage.models import TokenRecord
from ...fetchers.price_api import GeckoTerminalFetcher
from ..budget import RefreshBudget, SchedulerState


def addr(i: int) -> str:
    return "0x" + f"{i:040x}"


def index_of(address: str) -> int:
    return int(address, 16)


class PriceApiStub:
    """
    Stands in for requests.Session.get on the multi-token endpoint.

    Returns a record for every requested address accepted by `returns`,
    with fdv growing with the address index so rankings are predictable.
    """

    def __init__(self, returns=lambda address: True):
        self.returns = returns
        self.requests = []

    def __call__(self, url, **kwargs):
        addresses = url.rsplit("/", 1)[1].split(",")
        self.requests.append(addresses)
        response = Mock()
        response.status_code = 200
        response.headers = {}
        response.json = Mock(return_value={
            "data": [
                {
                    "id": f"base_{address}",
                    "attributes": {
                        "address": address,
                        "symbol": f"T{index_of(address)}",
                        "price_usd": "1.0",
                        "fdv_usd": str(index_of(address) * 1000),
                        "total_reserve_in_usd": "100",
                        "volume_usd": {"h24": "10"},
                    },
                }
                for address in addresses
                if self.returns(address)
            ]
        })
        return response


@pytest.fixture
def api():
    return PriceApiStub()


@pytest.fixture
def budget():
    return RefreshBudget(quota=5, safety_margin=2, tokens_per_call=10)


@pytest.fixture
def state(budget):
    return SchedulerState(budget=budget, priority_count=10)


@pytest.fixture
def price_fetcher(budget, api):
    config = PriceApiConfig()
    config.PRICE_API_BASE_URL = "https://prices.test/api/v2"
    session = Mock()
    session.get.side_effect = api
    return GeckoTerminalFetcher(config, budget, session=session, max_tokens_per_call=10)


@pytest_asyncio.fixture
async def storage(tmp_path):
    storage = JsonStorage({"path": tmp_path / "store.json", "pretty": False})
    await storage.connect()
    await storage.upsert_tokens([TokenRecord(contract_address=addr(i)) for i in range(1, 101)])
    yield storage
    await storage.disconnect()
