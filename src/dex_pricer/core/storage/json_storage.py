"""
JSON file storage implementation for local runs and tests.

A single document keyed by contract address, rewritten atomically through a
temporary file on every upsert.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .base import ConnectionError, DataError, TokenStore
from .models import TokenMarketRecord, TokenRecord, normalize_address

logger = logging.getLogger(__name__)

DATETIME_FIELDS = ("created_at", "last_updated")


def _encode(document: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v.isoformat() if isinstance(v, datetime) else v
        for k, v in document.items()
    }


def _decode(document: Dict[str, Any]) -> Dict[str, Any]:
    decoded = dict(document)
    for key in DATETIME_FIELDS:
        if isinstance(decoded.get(key), str):
            decoded[key] = datetime.fromisoformat(decoded[key])
    return decoded


class JsonStorage(TokenStore):
    """
    JSON file storage with the same upsert semantics as PostgresStorage.

    Features:
    - Upserts merge only the fields a record provides
    - Atomic writes
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize JSON storage.

        Args:
            config: Configuration with keys:
                - path: JSON document path
                - pretty: Whether to pretty-print JSON (default: True)
        """
        super().__init__(config)
        self.path = Path(config.get("path", "./data/token_store.json"))
        self.pretty = config.get("pretty", True)
        self._tokens: Dict[str, Dict[str, Any]] = {}
        self._market: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def from_config(cls, database_config) -> "JsonStorage":
        return cls({"path": database_config.json_store_path})

    async def connect(self) -> None:
        """Load the document, creating its directory if needed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            data = self._load()
        except Exception as e:
            logger.error(f"Failed to open JSON store {self.path}: {e}")
            raise ConnectionError(f"JSON store open failed: {e}")

        self._tokens = data.get("tokens", {})
        self._market = data.get("market", {})
        self.is_connected = True
        logger.info(
            f"JSON storage initialized at {self.path} "
            f"({len(self._tokens)} tokens, {len(self._market)} market records)"
        )

    async def disconnect(self) -> None:
        self.is_connected = False

    async def health_check(self) -> bool:
        """Check if the store directory is accessible."""
        return self.is_connected and self.path.parent.is_dir()

    def _require_connection(self):
        if not self.is_connected:
            raise ConnectionError("JSON storage is not connected")

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self):
        try:
            # Atomic write with temporary file
            temp_path = self.path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(
                    {"tokens": self._tokens, "market": self._market},
                    f,
                    indent=2 if self.pretty else None,
                    default=str,
                )
            temp_path.replace(self.path)
        except Exception as e:
            logger.error(f"Failed to save JSON store {self.path}: {e}")
            raise DataError(f"JSON save failed: {e}")

    @staticmethod
    def _merge(collection: Dict[str, Dict[str, Any]], document: Dict[str, Any]):
        key = document["contract_address"]
        merged = collection.get(key, {})
        merged.update(_encode(document))
        collection[key] = merged

    # Tracked tokens

    async def upsert_tokens(self, tokens: Sequence[TokenRecord]) -> int:
        self._require_connection()
        if not tokens:
            return 0
        for token in tokens:
            self._merge(self._tokens, token.to_document())
        self._save()
        logger.info(f"Upserted {len(tokens)} tokens")
        return len(tokens)

    async def list_token_addresses(self) -> List[str]:
        self._require_connection()
        return list(self._tokens.keys())

    # Market records

    async def upsert_market_records(self, records: Sequence[TokenMarketRecord]) -> int:
        self._require_connection()
        if not records:
            return 0
        for record in records:
            self._merge(self._market, record.to_document())
        self._save()
        logger.debug(f"Upserted {len(records)} market records")
        return len(records)

    async def get_market_record(self, address: str) -> Optional[TokenMarketRecord]:
        self._require_connection()
        document = self._market.get(normalize_address(address))
        return TokenMarketRecord.from_document(_decode(document)) if document else None

    async def get_top_by_market_cap(self, limit: int) -> List[TokenMarketRecord]:
        self._require_connection()
        ranked = sorted(
            (doc for doc in self._market.values() if (doc.get("market_cap") or 0) > 0),
            key=lambda doc: (-doc["market_cap"], doc["contract_address"]),
        )
        return [TokenMarketRecord.from_document(_decode(doc)) for doc in ranked[:limit]]

    async def get_rotation_candidates(self, exclude: Sequence[str], limit: int) -> List[str]:
        self._require_connection()
        if limit <= 0:
            return []
        excluded = {normalize_address(a) for a in exclude}

        def sort_key(address: str):
            last_updated = self._market.get(address, {}).get("last_updated")
            if last_updated is None:
                return (0, 0.0, address)
            return (1, datetime.fromisoformat(last_updated).timestamp(), address)

        candidates = [a for a in self._tokens if a not in excluded]
        candidates.sort(key=sort_key)
        return candidates[:limit]

    async def count_market_records(self) -> int:
        self._require_connection()
        return len(self._market)
