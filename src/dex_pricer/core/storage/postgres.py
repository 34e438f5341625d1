"""
PostgreSQL storage implementation for dex_pricer.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import asyncpg
from asyncpg.pool import Pool

from .base import ConnectionError, DataError, TokenStore
from .models import TokenMarketRecord, TokenRecord, normalize_address

logger = logging.getLogger(__name__)


TOKENS_SCHEMA = """
    CREATE TABLE IF NOT EXISTS {table} (
        contract_address TEXT PRIMARY KEY,
        name TEXT,
        symbol TEXT,
        decimals INTEGER,
        total_supply TEXT,
        factory TEXT,
        deployer TEXT,
        created_block BIGINT,
        created_at TIMESTAMPTZ,
        first_seen TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

MARKET_SCHEMA = """
    CREATE TABLE IF NOT EXISTS {table} (
        contract_address TEXT PRIMARY KEY,
        name TEXT,
        symbol TEXT,
        decimals INTEGER,
        total_supply TEXT,
        price_usd DOUBLE PRECISION,
        volume_usd DOUBLE PRECISION,
        liquidity_usd DOUBLE PRECISION,
        market_cap DOUBLE PRECISION,
        fdv_usd DOUBLE PRECISION,
        pool_count INTEGER,
        main_dex TEXT,
        main_pool_address TEXT,
        main_pool_tick INTEGER,
        is_priority BOOLEAN,
        source TEXT,
        last_updated TIMESTAMPTZ
    )
"""

MARKET_INDEXES = (
    "CREATE INDEX IF NOT EXISTS {table}_market_cap_idx ON {table} (market_cap DESC)",
    "CREATE INDEX IF NOT EXISTS {table}_last_updated_idx ON {table} (last_updated)",
)


def build_upsert_query(table: str, columns: List[str], key: str = "contract_address") -> str:
    """
    INSERT ... ON CONFLICT upsert where a NULL incoming value keeps the
    stored one.
    """
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    updates = ",\n                ".join(
        f"{column} = COALESCE(EXCLUDED.{column}, {table}.{column})"
        for column in columns
        if column != key
    )
    return f"""
            INSERT INTO {table} ({", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT ({key})
            DO UPDATE SET
                {updates}
        """


class PostgresStorage(TokenStore):
    """
    PostgreSQL storage supporting async operations through an asyncpg pool.

    Tables are created on connect if they do not exist.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize PostgreSQL storage.

        Args:
            config: Configuration with keys:
                - dsn: PostgreSQL connection URL
                - tokens_table: Tracked tokens table (default: tokens)
                - market_table: Market records table (default: token_market_data)
                - pool_kwargs: Extra keyword arguments for asyncpg.create_pool
        """
        super().__init__(config)
        self.pool: Optional[Pool] = None
        self.tokens_table = config.get("tokens_table", "tokens")
        self.market_table = config.get("market_table", "token_market_data")
        self.pool_kwargs = config.get("pool_kwargs", {"min_size": 2, "max_size": 10})

    @classmethod
    def from_config(cls, database_config) -> "PostgresStorage":
        return cls(
            {
                "dsn": database_config.postgres_url,
                "tokens_table": database_config.TOKENS_TABLE,
                "market_table": database_config.MARKET_TABLE,
                "pool_kwargs": database_config.pool_kwargs,
            }
        )

    async def connect(self) -> None:
        """Establish connection pool to PostgreSQL and ensure the schema."""
        try:
            self.pool = await asyncpg.create_pool(self.config["dsn"], **self.pool_kwargs)
            await self.initialize_schema()
            self.is_connected = True
            logger.info("PostgreSQL connection pool established")

        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise ConnectionError(f"PostgreSQL connection failed: {e}")

    async def initialize_schema(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(TOKENS_SCHEMA.format(table=self.tokens_table))
            await conn.execute(MARKET_SCHEMA.format(table=self.market_table))
            for statement in MARKET_INDEXES:
                await conn.execute(statement.format(table=self.market_table))

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.is_connected = False
            logger.info("PostgreSQL connection pool closed")

    async def health_check(self) -> bool:
        """Check PostgreSQL connection health."""
        if not self.pool:
            return False

        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    def _require_pool(self):
        if not self.pool:
            raise ConnectionError("Not connected to PostgreSQL")

    # Tracked tokens

    async def upsert_tokens(self, tokens: Sequence[TokenRecord]) -> int:
        """Store tokens in batch keyed by lower-case contract address."""
        self._require_pool()
        if not tokens:
            return 0

        columns = TokenRecord.column_names()
        query = build_upsert_query(self.tokens_table, columns)
        records = [tuple(getattr(token, column) for column in columns) for token in tokens]

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(query, records)
            logger.info(f"Upserted {len(records)} tokens")
            return len(records)

        except Exception as e:
            logger.error(f"Failed to batch upsert tokens: {e}")
            raise DataError(f"Batch token upsert failed: {e}")

    async def list_token_addresses(self) -> List[str]:
        self._require_pool()
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT contract_address FROM {self.tokens_table} ORDER BY first_seen, contract_address"
                )
                return [row["contract_address"] for row in rows]
        except Exception as e:
            logger.error(f"Failed to list tokens: {e}")
            raise DataError(f"Token listing failed: {e}")

    # Market records

    async def upsert_market_records(self, records: Sequence[TokenMarketRecord]) -> int:
        """Store market records in batch, keeping stored values for None fields."""
        self._require_pool()
        if not records:
            return 0

        columns = TokenMarketRecord.column_names()
        query = build_upsert_query(self.market_table, columns)
        rows = [tuple(getattr(record, column) for column in columns) for record in records]

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(query, rows)
            logger.debug(f"Upserted {len(rows)} market records")
            return len(rows)

        except Exception as e:
            logger.error(f"Failed to batch upsert market records: {e}")
            raise DataError(f"Batch market upsert failed: {e}")

    async def get_market_record(self, address: str) -> Optional[TokenMarketRecord]:
        self._require_pool()
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT * FROM {self.market_table} WHERE contract_address = $1",
                    normalize_address(address),
                )
                return TokenMarketRecord.from_document(dict(row)) if row else None
        except Exception as e:
            logger.error(f"Failed to get market record {address}: {e}")
            raise DataError(f"Market record lookup failed: {e}")

    async def get_top_by_market_cap(self, limit: int) -> List[TokenMarketRecord]:
        self._require_pool()
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT * FROM {self.market_table}
                    WHERE market_cap > 0
                    ORDER BY market_cap DESC, contract_address
                    LIMIT $1
                    """,
                    limit,
                )
                return [TokenMarketRecord.from_document(dict(row)) for row in rows]
        except Exception as e:
            logger.error(f"Failed to rank market records: {e}")
            raise DataError(f"Market cap ranking failed: {e}")

    async def get_rotation_candidates(self, exclude: Sequence[str], limit: int) -> List[str]:
        self._require_pool()
        if limit <= 0:
            return []
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT t.contract_address
                    FROM {self.tokens_table} t
                    LEFT JOIN {self.market_table} m
                        ON m.contract_address = t.contract_address
                    WHERE NOT (t.contract_address = ANY($1::text[]))
                    ORDER BY m.last_updated ASC NULLS FIRST, t.contract_address
                    LIMIT $2
                    """,
                    [normalize_address(a) for a in exclude],
                    limit,
                )
                return [row["contract_address"] for row in rows]
        except Exception as e:
            logger.error(f"Failed to select rotation candidates: {e}")
            raise DataError(f"Rotation candidate query failed: {e}")

    async def count_market_records(self) -> int:
        self._require_pool()
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(f"SELECT COUNT(*) FROM {self.market_table}")
        except Exception as e:
            logger.error(f"Failed to count market records: {e}")
            raise DataError(f"Market record count failed: {e}")
