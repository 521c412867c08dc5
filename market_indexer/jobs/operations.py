"""
Indexer operations.

The coroutines behind the CLI subcommands and the dramatiq actors. Each
takes a session maker so callers choose the engine (pooled for the
long-running process, NullPool inside worker threads).
"""

from collections.abc import Iterable, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_indexer.config.settings import settings
from market_indexer.jobs.health import (
    set_scheduler,
    set_supervisor,
    start_health_server,
    stop_health_server,
)
from market_indexer.jobs.scheduler import create_scheduler
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.indexer import (
    AttestationIndexer,
    IndexerSupervisor,
    PredictionMarketIndexer,
    ScanResult,
)
from market_indexer.services.reconciler import ReconcileStats, Reconciler
from market_indexer.utils.datetime_utils import unix_now
from market_indexer.utils.exceptions import UnsupportedChainError


def build_client(chain_id: int) -> ChainClient:
    """
    Create the chain client for ``chain_id``.

    Raises:
        UnsupportedChainError: No RPC URL configured
    """
    rpc_url = settings.get_rpc_url(chain_id)
    if not rpc_url:
        raise UnsupportedChainError(f"No RPC URL configured for chain {chain_id}")
    return ChainClient(chain_id, rpc_url)


def default_window(
    start_ts: int | None, end_ts: int | None
) -> tuple[int, int | None]:
    """Fill in the default reindex start (now minus the reindex window)."""
    if start_ts is None:
        start_ts = unix_now() - settings.default_reindex_window_seconds
    return start_ts, end_ts


async def reindex_prediction_market(
    session_maker: async_sessionmaker[AsyncSession],
    chain_id: int,
    start_ts: int | None = None,
    end_ts: int | None = None,
    clear_existing: bool = False,
    client: ChainClient | None = None,
) -> ScanResult:
    """
    Backfill the prediction market of one chain over a time window.

    Args:
        session_maker: Session factory
        chain_id: Chain to reindex
        start_ts: Window start, defaults to now minus two days
        end_ts: Window end, defaults to the head
        clear_existing: Delete positions and market events first
        client: Chain client override

    Returns:
        ScanResult
    """
    start_ts, end_ts = default_window(start_ts, end_ts)
    client = client or build_client(chain_id)

    async with session_maker() as session:
        indexer = PredictionMarketIndexer(chain_id, session, client)
        if clear_existing:
            await indexer.clear_existing()
        result = await indexer.index_from_timestamp(
            start_ts, end_ts, overwrite_existing=clear_existing
        )

    logger.success(
        f"[Reindex] Prediction market chain {chain_id}: {result.summary()}"
    )
    return result


async def reindex_attestations(
    session_maker: async_sessionmaker[AsyncSession],
    chain_id: int,
    start_ts: int | None = None,
    end_ts: int | None = None,
    overwrite_existing: bool = False,
    client: ChainClient | None = None,
) -> ScanResult:
    """Backfill prediction attestations of one chain over a time window."""
    start_ts, end_ts = default_window(start_ts, end_ts)
    client = client or build_client(chain_id)

    async with session_maker() as session:
        indexer = AttestationIndexer(chain_id, session, client)
        result = await indexer.index_from_timestamp(
            start_ts, end_ts, overwrite_existing=overwrite_existing
        )

    logger.success(f"[Reindex] Attestations chain {chain_id}: {result.summary()}")
    return result


async def index_blocks(
    session_maker: async_sessionmaker[AsyncSession],
    chain_id: int,
    blocks: Iterable[int],
    attestations: bool = False,
    client: ChainClient | None = None,
) -> ScanResult:
    """Replay specific blocks through the prediction market or attestation indexer."""
    client = client or build_client(chain_id)
    indexer_class = AttestationIndexer if attestations else PredictionMarketIndexer

    async with session_maker() as session:
        indexer = indexer_class(chain_id, session, client)
        result = await indexer.index_blocks(blocks)

    logger.success(f"[Reindex] {indexer.log_prefix} {result.summary()}")
    return result


async def reconcile(
    session_maker: async_sessionmaker[AsyncSession],
    lookback_seconds: int | None = None,
) -> ReconcileStats | None:
    """Run one reconciler pass."""
    return await Reconciler(session_maker).run_once(lookback_seconds)


async def watch(
    session_maker: async_sessionmaker[AsyncSession],
    chain_ids: Sequence[int] | None = None,
    reconciler_interval: int | None = None,
    health_port: int | None = None,
    include_attestations: bool = True,
) -> None:
    """
    Run live indexing until SIGINT/SIGTERM.

    Starts one indexer per chain and contract family, the reconciler
    interval job and the health server.
    """
    supervisor = IndexerSupervisor(
        session_maker, chain_ids, include_attestations=include_attestations
    )
    supervisor.build()

    reconciler = Reconciler(session_maker, clients=supervisor.clients)
    scheduler = create_scheduler(reconciler, reconciler_interval)
    set_supervisor(supervisor)

    runner, _ = await start_health_server(
        settings.health_host, health_port or settings.health_port
    )
    scheduler.start()
    set_scheduler(scheduler)
    try:
        await supervisor.run()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
        await stop_health_server(runner)
