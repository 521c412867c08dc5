"""
Command line entry point.

Usage:
    market-indexer reindex-market 42161 [--start-ts TS] [--end-ts TS] [--clear-existing]
    market-indexer reindex-attestations 42161 [--start-ts TS] [--end-ts TS] [--overwrite]
    market-indexer index-blocks 42161 1000 1001 1002 [--attestations]
    market-indexer watch [--chain 42161 ...] [--reconciler-interval 15] [--health-port 8081]
    market-indexer reconcile [--lookback-seconds 3600]
"""

import argparse
import asyncio
import sys
from collections.abc import Coroutine, Sequence
from typing import Any

from loguru import logger

from market_indexer.config.settings import settings
from market_indexer.utils.exceptions import UnsupportedChainError
from market_indexer.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="market-indexer",
        description="Prediction market and attestation indexer",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command")

    market_parser = subparsers.add_parser(
        "reindex-market", help="Backfill the prediction market of a chain"
    )
    market_parser.add_argument("chain_id", type=int)
    market_parser.add_argument("--start-ts", type=int, default=None)
    market_parser.add_argument("--end-ts", type=int, default=None)
    market_parser.add_argument(
        "--clear-existing",
        action="store_true",
        help="Delete positions and market events for the chain first",
    )

    attestation_parser = subparsers.add_parser(
        "reindex-attestations", help="Backfill prediction attestations of a chain"
    )
    attestation_parser.add_argument("chain_id", type=int)
    attestation_parser.add_argument("--start-ts", type=int, default=None)
    attestation_parser.add_argument("--end-ts", type=int, default=None)
    attestation_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-process blocks that already hold attestations",
    )

    blocks_parser = subparsers.add_parser(
        "index-blocks", help="Replay specific blocks"
    )
    blocks_parser.add_argument("chain_id", type=int)
    blocks_parser.add_argument("blocks", type=int, nargs="+")
    blocks_parser.add_argument(
        "--attestations",
        action="store_true",
        help="Replay through the attestation indexer",
    )

    watch_parser = subparsers.add_parser(
        "watch", help="Catch up and follow the chain head"
    )
    watch_parser.add_argument(
        "--chain",
        dest="chains",
        type=int,
        action="append",
        default=None,
        help="Chain id to watch (repeatable, default: all configured)",
    )
    watch_parser.add_argument("--reconciler-interval", type=int, default=None)
    watch_parser.add_argument("--health-port", type=int, default=None)
    watch_parser.add_argument(
        "--no-attestations",
        action="store_true",
        help="Only run the prediction market indexers",
    )

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Run one reconciler pass"
    )
    reconcile_parser.add_argument("--lookback-seconds", type=int, default=None)

    return parser


def build_command(args: argparse.Namespace) -> Coroutine[Any, Any, Any] | None:
    """Map parsed arguments to the operation coroutine."""
    from market_indexer.config.database import async_session_maker
    from market_indexer.jobs import operations

    if args.command == "reindex-market":
        return operations.reindex_prediction_market(
            async_session_maker,
            args.chain_id,
            args.start_ts,
            args.end_ts,
            clear_existing=args.clear_existing,
        )
    if args.command == "reindex-attestations":
        return operations.reindex_attestations(
            async_session_maker,
            args.chain_id,
            args.start_ts,
            args.end_ts,
            overwrite_existing=args.overwrite,
        )
    if args.command == "index-blocks":
        return operations.index_blocks(
            async_session_maker,
            args.chain_id,
            args.blocks,
            attestations=args.attestations,
        )
    if args.command == "watch":
        return operations.watch(
            async_session_maker,
            args.chains,
            reconciler_interval=args.reconciler_interval,
            health_port=args.health_port,
            include_attestations=not args.no_attestations,
        )
    if args.command == "reconcile":
        return operations.reconcile(async_session_maker, args.lookback_seconds)
    return None


async def _run(command: Coroutine[Any, Any, Any]) -> None:
    from market_indexer.config.database import async_engine

    try:
        await command
    finally:
        await async_engine.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    setup_logging(args.log_level or settings.log_level, settings.log_file)

    command = build_command(args)
    try:
        asyncio.run(_run(command))
    except UnsupportedChainError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped by user (KeyboardInterrupt)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
