"""Test configuration for storage."""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from ..json_storage import JsonStorage
from ..models import TokenMarketRecord, TokenRecord

TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
TOKEN_C = "0x" + "cc" * 20


class AsyncContext:
    """Async context manager yielding a fixed object, standing in for pool.acquire()."""

    def __init__(self, value=None):
        self.value = value

    async def __aenter__(self):
        return self.value

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def base_time():
    return datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def sample_tokens():
    return [
        TokenRecord(contract_address=TOKEN_A.upper().replace("0X", "0x"), name="A", symbol="A", decimals=18),
        TokenRecord(contract_address=TOKEN_B, name="B", symbol="B", decimals=18),
        TokenRecord(contract_address=TOKEN_C, name="C", symbol="C", decimals=18),
    ]


@pytest.fixture
def market_record(base_time):
    def build(address, market_cap=None, minutes=0, **fields):
        return TokenMarketRecord(
            contract_address=address,
            market_cap=market_cap,
            last_updated=base_time + timedelta(minutes=minutes),
            **fields,
        )

    return build


@pytest_asyncio.fixture
async def json_storage(tmp_path):
    storage = JsonStorage({"path": tmp_path / "store.json"})
    await storage.connect()
    yield storage
    await storage.disconnect()


@pytest.fixture
def pg_connection():
    conn = AsyncMock()
    conn.transaction = Mock(return_value=AsyncContext())
    return conn


@pytest.fixture
def pg_pool(pg_connection):
    pool = Mock()
    pool.acquire = Mock(return_value=AsyncContext(pg_connection))
    pool.close = AsyncMock()
    return pool
