"""
ERC20 metadata batch fetcher.

Reads name, symbol, decimals and totalSupply for a batch of tokens through
one aggregated call. Items that fail or do not decode fall back to defaults.
"""

from datetime import datetime, timezone
from typing import Dict, List, Union

from .base import BatchResult
from .multicall import Call, MulticallBatcher

DEFAULT_DECIMALS = 18

METADATA_CALLS = (
    ("name", "name()", ("string",), ""),
    ("symbol", "symbol()", ("string",), ""),
    ("decimals", "decimals()", ("uint8",), DEFAULT_DECIMALS),
    ("total_supply", "totalSupply()", ("uint256",), 0),
)


def default_metadata() -> Dict[str, object]:
    return {"name": "", "symbol": "", "decimals": DEFAULT_DECIMALS, "total_supply": "0"}


class ERC20MetadataBatcher(MulticallBatcher):
    """Batch fetcher for ERC20 token metadata."""

    def _build_calls(self, tokens: List[str]) -> List[Call]:
        return [
            Call(target=token, signature=signature, output_types=output_types)
            for token in tokens
            for _, signature, output_types, _ in METADATA_CALLS
        ]

    def _decode_results(self, tokens: List[str], results) -> Dict[str, Dict[str, object]]:
        metadata: Dict[str, Dict[str, object]] = {}
        width = len(METADATA_CALLS)

        for i, token in enumerate(tokens):
            item = default_metadata()
            for j, (field_name, _, _, default) in enumerate(METADATA_CALLS):
                result = results[i * width + j]
                value = result.value if result.success else default
                if field_name in ("name", "symbol") and isinstance(value, str):
                    value = value.replace("\x00", "").strip()
                item[field_name] = value
            # Wide integers are carried as decimal strings
            item["total_supply"] = str(int(item["total_supply"]))
            metadata[token] = item

        return metadata

    async def batch_call(
        self, addresses: List[str], block_identifier: Union[int, str] = "latest"
    ) -> BatchResult:
        """
        Fetch metadata for a batch of token addresses.

        Returns:
            BatchResult whose data maps lower-case token address to
            {name, symbol, decimals, total_supply}
        """
        try:
            tokens = self._validate_addresses(addresses)
            if not tokens:
                return BatchResult(success=False, data={}, error="No valid token addresses provided")

            results = await self.aggregate(
                self._build_calls(tokens), block_identifier, fallback_to_individual=True
            )
            metadata = self._decode_results(tokens, results)

            failed = sum(1 for item in metadata.values() if not item["symbol"])
            if failed:
                self.logger.debug(f"{failed}/{len(tokens)} tokens returned no symbol, using defaults")

            return BatchResult(
                success=True,
                data=metadata,
                timestamp=datetime.now(timezone.utc),
            )

        except Exception as e:
            self.logger.error(f"ERC20 metadata batch call failed: {e}")
            return BatchResult(success=False, data={}, error=str(e))

    async def fetch_metadata(
        self, addresses: List[str], block_identifier: Union[int, str] = "latest"
    ) -> Dict[str, Dict[str, object]]:
        """
        Fetch metadata, substituting defaults for every token the batch
        could not answer for.
        """
        tokens = self._validate_addresses(addresses)
        result = await self.batch_call(tokens, block_identifier)
        if not result.success:
            self.logger.warning(f"Metadata batch failed, using defaults: {result.error}")
        return {token: result.data.get(token, default_metadata()) for token in tokens}
