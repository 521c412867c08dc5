"""Reindex tasks for the prediction market and attestation indexers."""

import dramatiq
from loguru import logger

from market_indexer.config.constants import DRAMATIQ_TIME_LIMIT_REINDEX
from market_indexer.jobs import operations
from market_indexer.jobs.async_runner import local_session_maker, run_async
from market_indexer.jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_REINDEX)
def reindex_prediction_market(
    chain_id: int,
    start_ts: int | None = None,
    end_ts: int | None = None,
    clear_existing: bool = False,
) -> None:
    """
    Backfill the prediction market of a chain.

    Failures propagate so the Retries middleware re-queues the message;
    replays are safe because every event is deduplicated.
    """
    logger.info(f"Starting prediction market reindex for chain {chain_id}...")
    run_async(
        _reindex_prediction_market_async(chain_id, start_ts, end_ts, clear_existing)
    )
    logger.info(f"Prediction market reindex for chain {chain_id} completed")


async def _reindex_prediction_market_async(
    chain_id: int,
    start_ts: int | None,
    end_ts: int | None,
    clear_existing: bool,
) -> None:
    async with local_session_maker() as session_maker:
        await operations.reindex_prediction_market(
            session_maker, chain_id, start_ts, end_ts, clear_existing
        )


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_REINDEX)
def reindex_attestations(
    chain_id: int,
    start_ts: int | None = None,
    end_ts: int | None = None,
    overwrite_existing: bool = False,
) -> None:
    """Backfill prediction attestations of a chain."""
    logger.info(f"Starting attestation reindex for chain {chain_id}...")
    run_async(
        _reindex_attestations_async(chain_id, start_ts, end_ts, overwrite_existing)
    )
    logger.info(f"Attestation reindex for chain {chain_id} completed")


async def _reindex_attestations_async(
    chain_id: int,
    start_ts: int | None,
    end_ts: int | None,
    overwrite_existing: bool,
) -> None:
    async with local_session_maker() as session_maker:
        await operations.reindex_attestations(
            session_maker, chain_id, start_ts, end_ts, overwrite_existing
        )
