"""
Scheduler setup.

Runs the reconciler on a fixed interval inside the indexer process.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from market_indexer.config.constants import RECONCILER_JOB_ID
from market_indexer.config.settings import settings
from market_indexer.services.reconciler import Reconciler
from market_indexer.utils.datetime_utils import utc_now


def create_scheduler(
    reconciler: Reconciler,
    interval_seconds: int | None = None,
) -> AsyncIOScheduler:
    """
    Create a scheduler with the reconciler interval job.

    The job is registered with ``max_instances=1`` and ``coalesce`` so a
    slow run delays the next one instead of stacking up.

    Args:
        reconciler: Reconciler to run
        interval_seconds: Period, defaults to ``reconciler_interval_seconds``

    Returns:
        Scheduler, not yet started
    """
    interval = interval_seconds or settings.reconciler_interval_seconds
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        reconciler.run_once,
        "interval",
        seconds=interval,
        id=RECONCILER_JOB_ID,
        name="Position reconciler",
        max_instances=1,
        coalesce=True,
        next_run_time=utc_now(),
    )
    logger.info(f"Reconciler scheduled every {interval} seconds")
    return scheduler
