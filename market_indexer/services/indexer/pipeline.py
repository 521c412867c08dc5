"""
Event Pipeline.

decode -> dedup -> project for a single log, committed atomically per
log. Nothing raised by one log escapes to the caller.
"""

from enum import StrEnum

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.services.chain.types import BlockInfo, RawLog
from market_indexer.services.events.decoder import EventDecoder
from market_indexer.services.events.types import DecodedEvent
from market_indexer.services.indexer.dedup import DedupStore
from market_indexer.services.projector.core import ProjectorBase
from market_indexer.services.telemetry import capture_exception
from market_indexer.utils.exceptions import EventDecodeError


class LogOutcome(StrEnum):
    """What processing a log did."""

    IGNORED = "ignored"  # Untracked address or unknown signature
    DUPLICATE = "duplicate"  # Already recorded and projected
    HEALED = "healed"  # Already recorded, projection re-run
    PROJECTED = "projected"  # Newly recorded and projected
    FAILED = "failed"  # Decode or storage failure, rolled back


class EventPipeline:
    """Per-log processing shared by backfill, live mode and reconciler."""

    def __init__(
        self,
        session: AsyncSession,
        decoder: EventDecoder,
        projector: ProjectorBase,
        log_prefix: str,
    ) -> None:
        self.session = session
        self.decoder = decoder
        self.projector = projector
        self.dedup = DedupStore(session)
        self.log_prefix = log_prefix

        projector.validate(decoder.event_classes)

    async def process_log(self, log: RawLog, block: BlockInfo) -> LogOutcome:
        """
        Process one log.

        Args:
            log: Raw log
            block: The log's block (for its timestamp)

        Returns:
            LogOutcome describing what happened
        """
        try:
            event = self.decoder.decode(log, block.timestamp)
        except EventDecodeError as e:
            logger.error(f"{self.log_prefix} {e}")
            capture_exception(
                e,
                chain_id=self.decoder.chain_id,
                block_number=log.block_number,
                transaction_hash=log.transaction_hash,
            )
            return LogOutcome.FAILED

        if event is None:
            return LogOutcome.IGNORED

        return await self.process_event(event)

    async def process_event(self, event: DecodedEvent) -> LogOutcome:
        """Dedup and project an already decoded event."""
        ctx = event.context
        try:
            outcome = await self._dedup_and_project(event)
            await self.session.commit()
            return outcome
        except Exception as e:
            await self.session.rollback()
            logger.error(
                f"{self.log_prefix} Error processing {event.event_type} "
                f"tx={ctx.transaction_hash} block={ctx.block_number} "
                f"logIndex={ctx.log_index}: {e}"
            )
            capture_exception(
                e,
                chain_id=ctx.chain_id,
                event_type=event.event_type,
                block_number=ctx.block_number,
                transaction_hash=ctx.transaction_hash,
            )
            return LogOutcome.FAILED

    async def _dedup_and_project(self, event: DecodedEvent) -> LogOutcome:
        ctx = event.context
        existing = await self.dedup.find(event)

        if existing is None:
            raw_event = await self.dedup.record(event)
            await self.projector.record_transaction(event, raw_event)
            await self.projector.project(event)
            return LogOutcome.PROJECTED

        if await self.projector.is_projected(event):
            logger.debug(
                f"{self.log_prefix} Event already exists tx={ctx.transaction_hash} "
                f"block={ctx.block_number} logIndex={ctx.log_index}"
            )
            return LogOutcome.DUPLICATE

        logger.info(
            f"{self.log_prefix} {event.event_type} exists but derived record "
            f"is missing, re-projecting tx={ctx.transaction_hash} "
            f"logIndex={ctx.log_index}"
        )
        await self.projector.project(event)
        return LogOutcome.HEALED
