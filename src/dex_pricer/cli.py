#!/usr/bin/env python3
"""
Command-line interface for the token price service.

Usage:
    dex-pricer serve
    dex-pricer discover
    dex-pricer enrich --token 0xabc... --token 0xdef...
    dex-pricer rank
    dex-pricer refresh-priority
    dex-pricer refresh-rotation
    dex-pricer reference-price
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import asdict
from typing import List, Optional

from .config import get_config
from .refresh.passes import PassResult
from .refresh.service import PriceRefreshService

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def format_pass_result(result: PassResult) -> bool:
    """Log a pass outcome and return whether it succeeded."""
    if result.error:
        logger.error(f"❌ {result.name} failed: {result.error}")
        return False
    if result.skipped:
        logger.info(f"⏭️  {result.name} skipped ({result.reason})")
        return True
    logger.info(f"✅ {result.name}: {result.updated} updated of {result.requested} requested")
    return True


async def run_serve(service: PriceRefreshService, args) -> bool:
    logger.info("🚀 Starting price refresh service")
    await service.run_forever()
    return True


async def run_discover(service: PriceRefreshService, args) -> bool:
    return format_pass_result(await service.run_discovery())


async def run_enrich(service: PriceRefreshService, args) -> bool:
    stats = await service.enrichment.run(args.token or None)
    logger.info(f"📊 Enrichment: {asdict(stats)}")
    return stats.failed_batches == 0 or stats.failed_batches < stats.batches


async def run_rank(service: PriceRefreshService, args) -> bool:
    ok = format_pass_result(await service.run_full_ranking())
    for i, token in enumerate(service.state.priority_tokens, 1):
        logger.info(f"  {i:2d}. {token}")
    return ok


async def run_refresh_priority(service: PriceRefreshService, args) -> bool:
    # A fresh process has no priority list until a ranking pass runs
    await service.run_full_ranking()
    return format_pass_result(await service.run_priority_refresh())


async def run_refresh_rotation(service: PriceRefreshService, args) -> bool:
    return format_pass_result(await service.run_rotation_refresh())


async def run_reference_price(service: PriceRefreshService, args) -> bool:
    price = await service.reference_price()
    logger.info(f"💲 Reference asset price: ${price:.2f} ({service.oracle.state.value})")
    return True


COMMANDS = {
    "serve": (run_serve, "Run every recurring job until interrupted"),
    "discover": (run_discover, "Run one token discovery pass"),
    "enrich": (run_enrich, "Run one on-chain enrichment pass"),
    "rank": (run_rank, "Rebuild the priority list from stored market caps"),
    "refresh-priority": (run_refresh_priority, "Rank, then refresh the priority tokens once"),
    "refresh-rotation": (run_refresh_rotation, "Refresh the oldest non-priority tokens once"),
    "reference-price": (run_reference_price, "Print the reference asset USD price"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dex-pricer",
        description="On-chain token pricing and rate-budgeted price refresh",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the long-lived service
  dex-pricer serve

  # Use the JSON store instead of PostgreSQL
  STORAGE_BACKEND=json dex-pricer discover

  # Price two tokens from their pools
  dex-pricer enrich --token 0x... --token 0x...
        """,
    )
    parser.add_argument(
        "--environment",
        choices=["local", "dev", "staging", "production"],
        help="Override ENVIRONMENT",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (_, help_text) in COMMANDS.items():
        sub = subparsers.add_parser(name, help=help_text)
        if name == "enrich":
            sub.add_argument(
                "--token",
                action="append",
                help="Token address to enrich (repeatable, default: every tracked token)",
            )
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    service = PriceRefreshService(get_config(environment=args.environment))
    handler, _ = COMMANDS[args.command]

    try:
        if args.command == "serve":
            success = await handler(service, args)
        else:
            await service.storage.connect()
            try:
                success = await handler(service, args)
            finally:
                await service.storage.disconnect()
        return 0 if success else 1

    except KeyboardInterrupt:
        logger.info("⏹️  Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"💥 Unexpected error: {e}")
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
