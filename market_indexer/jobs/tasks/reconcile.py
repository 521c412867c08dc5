"""Reconciler task."""

import dramatiq
from loguru import logger

from market_indexer.config.constants import DRAMATIQ_TIME_LIMIT_STANDARD
from market_indexer.jobs import operations
from market_indexer.jobs.async_runner import local_session_maker, run_async
from market_indexer.jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=0, time_limit=DRAMATIQ_TIME_LIMIT_STANDARD)
def reconcile_positions(lookback_seconds: int | None = None) -> None:
    """
    Run one reconciler pass.

    Not retried: the next scheduled pass covers the same window.
    """
    logger.info("Starting position reconciliation...")

    try:
        run_async(_reconcile_positions_async(lookback_seconds))
        logger.info("Position reconciliation task completed")

    except Exception as e:
        logger.exception(f"Position reconciliation task failed: {e}")


async def _reconcile_positions_async(lookback_seconds: int | None) -> None:
    async with local_session_maker() as session_maker:
        await operations.reconcile(session_maker, lookback_seconds)
