"""
Reconciler.

Periodic backstop for the event-driven pipeline. Each run is one
bounded pass per chain:

1. Re-scan the prediction market and resolver logs since the chain's
   watermark and replay them through the pipeline.
2. Re-project stored events whose derived record is still missing
   (mints without a position, burns and consolidations whose position
   has appeared since, resolutions for conditions seeded later, and
   fills and cancels whose order has appeared since).
3. Fill in position expiry once the referenced conditions are known.

A failed run is logged and reported; the next scheduled run proceeds
as usual.
"""

import json
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_indexer.config.constants import (
    RECONCILER_LAST_RUN_KEY,
    RECONCILER_LOG_PREFIX,
    RECONCILER_STATUS_KEY,
    reconciler_watermark_key,
)
from market_indexer.config.settings import settings
from market_indexer.repositories import (
    ConditionRepository,
    KeyValueRepository,
    PositionRepository,
    RawEventRepository,
)
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.events.types import (
    MarketResolved,
    MarketSubmitted,
    OrderCancelled,
    OrderFilled,
    PredictionBurned,
    PredictionConsolidated,
    PredictionMinted,
)
from market_indexer.services.indexer.dedup import stored_event
from market_indexer.services.indexer.pipeline import LogOutcome
from market_indexer.services.indexer.prediction_market import (
    PredictionMarketIndexer,
)
from market_indexer.services.telemetry import capture_exception
from market_indexer.utils.datetime_utils import unix_now, utc_now
from market_indexer.utils.exceptions import RPC_ERRORS, UnsupportedChainError

ClientFactory = Callable[[int, str], ChainClient]

# Events whose projection depends on a record that may be indexed later
HEALABLE_EVENT_TYPES = (
    PredictionMinted,
    PredictionBurned,
    PredictionConsolidated,
    MarketSubmitted,
    MarketResolved,
)


@dataclass
class ReconcileStats:
    """Totals for one reconciler run."""

    chains: int = 0
    scanned_logs: int = 0
    outcomes: Counter = field(default_factory=Counter)
    healed_from_store: int = 0
    ends_at_updated: int = 0


class Reconciler:
    """
    Position reconciler.

    ``run_once`` is guarded by ``is_running``: a run that starts while
    another is in progress returns immediately.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clients: Mapping[int, ChainClient] | None = None,
        client_factory: ClientFactory = ChainClient,
    ) -> None:
        self.session_maker = session_maker
        self.clients: dict[int, ChainClient] = dict(clients or {})
        self.client_factory = client_factory
        self.is_running = False
        self.log_prefix = RECONCILER_LOG_PREFIX

    def _client(self, chain_id: int) -> ChainClient | None:
        client = self.clients.get(chain_id)
        if client is None:
            rpc_url = settings.get_rpc_url(chain_id)
            if not rpc_url:
                return None
            client = self.client_factory(chain_id, rpc_url)
            self.clients[chain_id] = client
        return client

    # ====================================================================
    # Key-value state
    # ====================================================================

    async def _set_status(self, status: str, message: str) -> None:
        async with self.session_maker() as session:
            kv = KeyValueRepository(session)
            await kv.set_value(
                RECONCILER_STATUS_KEY,
                json.dumps(
                    {
                        "status": status,
                        "message": message,
                        "timestamp": utc_now().isoformat(),
                    }
                ),
            )
            await session.commit()

    async def get_watermark(self, session: AsyncSession, chain_id: int) -> int | None:
        if not settings.reconciler_enable_watermark:
            return None
        raw = await KeyValueRepository(session).get_value(
            reconciler_watermark_key(chain_id)
        )
        if not raw:
            return None
        try:
            value = int(raw)
        except ValueError:
            logger.warning(
                f"{self.log_prefix} Ignoring malformed watermark {raw!r} "
                f"for chain {chain_id}"
            )
            return None
        return value if value > 0 else None

    async def set_watermark(
        self, session: AsyncSession, chain_id: int, block_number: int
    ) -> None:
        if not settings.reconciler_enable_watermark:
            return
        await KeyValueRepository(session).set_value(
            reconciler_watermark_key(chain_id), str(block_number)
        )
        await session.commit()

    # ====================================================================
    # Run
    # ====================================================================

    async def chains_to_reconcile(self, session: AsyncSession) -> list[int]:
        with_positions = await PositionRepository(session).distinct_chain_ids()
        return sorted(set(with_positions) | set(settings.configured_chains()))

    async def run_once(self, lookback_seconds: int | None = None) -> ReconcileStats | None:
        """
        Run one reconciliation pass.

        Args:
            lookback_seconds: Timestamp window used when a chain has no
                watermark; defaults to ``reconciler_lookback_seconds``

        Returns:
            ReconcileStats, or None if a run was already in progress
        """
        if self.is_running:
            logger.debug(f"{self.log_prefix} Previous run still in progress, skipping")
            return None

        self.is_running = True
        stats = ReconcileStats()
        try:
            await self._set_status("processing", "Reconciling position events")
            if lookback_seconds is None:
                lookback_seconds = settings.reconciler_lookback_seconds

            async with self.session_maker() as session:
                chain_ids = await self.chains_to_reconcile(session)

            for chain_id in chain_ids:
                try:
                    await self._reconcile_chain(chain_id, lookback_seconds, stats)
                except Exception as e:
                    logger.error(
                        f"{self.log_prefix} Failed reconciling chain {chain_id}: {e}"
                    )
                    capture_exception(e, chain_id=chain_id, stage="reconcile")

            stats.ends_at_updated = await self._fill_missing_ends_at()

            logger.info(
                f"{self.log_prefix} Run complete: chains={stats.chains}, "
                f"scannedLogs={stats.scanned_logs}, "
                f"newEvents={stats.outcomes[LogOutcome.PROJECTED]}, "
                f"healed={stats.outcomes[LogOutcome.HEALED] + stats.healed_from_store}, "
                f"endsAtUpdated={stats.ends_at_updated}"
            )

            async with self.session_maker() as session:
                await KeyValueRepository(session).set_value(
                    RECONCILER_LAST_RUN_KEY, utc_now().isoformat()
                )
                await session.commit()
            await self._set_status("idle", "Position reconciliation completed")
            return stats
        except Exception as e:
            logger.error(f"{self.log_prefix} Run failed: {e}")
            capture_exception(e, stage="reconcile")
            return stats
        finally:
            self.is_running = False

    async def _start_block(
        self,
        session: AsyncSession,
        client: ChainClient,
        chain_id: int,
        latest: int,
        lookback_seconds: int,
    ) -> int:
        watermark = await self.get_watermark(session, chain_id)
        if watermark is not None:
            return watermark + 1

        from_block = max(0, latest - settings.reconciler_fallback_block_lookback)
        if lookback_seconds > 0:
            try:
                block = await client.get_block_by_timestamp(unix_now() - lookback_seconds)
            except RPC_ERRORS as e:
                logger.warning(
                    f"{self.log_prefix} get_block_by_timestamp failed, keeping "
                    f"fallback window (chain={chain_id}, reason={e})"
                )
            else:
                from_block = max(from_block, block.number)
        return from_block

    async def _reconcile_chain(
        self, chain_id: int, lookback_seconds: int, stats: ReconcileStats
    ) -> None:
        client = self._client(chain_id)
        if client is None:
            logger.warning(f"{self.log_prefix} No RPC URL for chain {chain_id}, skipping")
            return

        async with self.session_maker() as session:
            try:
                indexer = PredictionMarketIndexer(chain_id, session, client)
            except UnsupportedChainError as e:
                logger.warning(f"{self.log_prefix} {e}, skipping")
                return
            stats.chains += 1

            latest = await client.get_block_number()
            from_block = await self._start_block(
                session, client, chain_id, latest, lookback_seconds
            )
            # One bounded window per run; the watermark carries the rest
            to_block = min(latest, from_block + settings.large_range_chunk_size - 1)

            if from_block <= to_block:
                logs = await indexer.fetch_logs(from_block, to_block)
                stats.scanned_logs += len(logs)
                cache = client.block_cache()
                for log in logs:
                    try:
                        block = await cache.get(log.block_number)
                    except Exception as e:
                        logger.error(
                            f"{self.log_prefix} Error processing log "
                            f"{log.transaction_hash}: {e}"
                        )
                        stats.outcomes[LogOutcome.FAILED] += 1
                        continue
                    stats.outcomes[await indexer.process_log(log, block)] += 1
                await self.set_watermark(session, chain_id, to_block)

            since_block = max(0, to_block - settings.reconciler_fallback_block_lookback)
            stats.healed_from_store += await self._heal_from_store(
                indexer, session, since_block
            )

    async def _heal_from_store(
        self,
        indexer: PredictionMarketIndexer,
        session: AsyncSession,
        since_block: int,
    ) -> int:
        """
        Re-project stored events whose derived record is still missing.

        Rows replay in (block, log index) order, so a mint healed here is
        in place before the burn or consolidation that follows it.
        """
        event_types = [cls.event_type for cls in HEALABLE_EVENT_TYPES]
        if settings.reconcile_orphan_order_events:
            event_types += [OrderFilled.event_type, OrderCancelled.event_type]

        rows = await RawEventRepository(session).find_by_types(
            indexer.chain_id,
            event_types,
            contract_addresses=indexer.addresses,
            from_block=since_block,
        )

        # Rebuilt up front: a rolled back heal expires the loaded rows
        events = [stored_event(row) for row in rows]

        healed = 0
        for event in events:
            if await indexer.projector.is_projected(event):
                continue
            if await indexer.pipeline.process_event(event) == LogOutcome.HEALED:
                healed += 1

        if healed:
            logger.info(
                f"{self.log_prefix} Healed {healed} stored event(s) "
                f"on chain {indexer.chain_id}"
            )
        return healed

    async def _fill_missing_ends_at(self) -> int:
        async with self.session_maker() as session:
            positions = await PositionRepository(session).find_without_ends_at()
            conditions = ConditionRepository(session)
            updated = 0
            for position in positions:
                ends_at = await conditions.max_end_time(
                    leg.condition_id for leg in position.legs
                )
                if ends_at is not None:
                    position.ends_at = ends_at
                    updated += 1
            if updated:
                await session.commit()
        return updated
