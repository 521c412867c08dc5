"""
Base Indexer.

One indexer instance per (chain, contract family). Owns its session,
decoder, projector, scanner and watch loop.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.repositories import IndexerCursorRepository, RawEventRepository
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.chain.types import BlockInfo, RawLog
from market_indexer.services.events.decoder import EventDecoder
from market_indexer.services.events.schema import EventSpec
from market_indexer.services.indexer.pipeline import EventPipeline, LogOutcome
from market_indexer.services.indexer.scanner import BlockRangeScanner, ScanResult
from market_indexer.services.indexer.watch_loop import WatchLoop
from market_indexer.services.projector.core import ProjectorBase
from market_indexer.services.telemetry import capture_exception
from market_indexer.utils.datetime_utils import format_unix
from market_indexer.utils.exceptions import DATABASE_ERRORS


def contiguous_runs(blocks: Iterable[int]) -> list[tuple[int, int]]:
    """Group block numbers into sorted inclusive (start, end) runs."""
    runs: list[tuple[int, int]] = []
    for block in sorted(set(blocks)):
        if runs and block == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], block)
        else:
            runs.append((block, block))
    return runs


class BaseIndexer:
    """
    Shared indexer behaviour.

    Subclasses set ``indexer_name`` and build the decoder and projector
    for their contract family.
    """

    indexer_name: str = ""

    def __init__(
        self,
        chain_id: int,
        session: AsyncSession,
        client: ChainClient,
        contract_address: str,
        addresses: Sequence[str],
        specs: Sequence[EventSpec],
        projector: ProjectorBase,
        log_prefix: str,
        batch_delay: float = 0.0,
        log_topics: list[Any] | None = None,
    ) -> None:
        self.chain_id = chain_id
        self.session = session
        self.client = client
        self.contract_address = contract_address.lower()
        self.addresses = [a.lower() for a in addresses]
        self.log_topics = log_topics
        self.log_prefix = log_prefix

        self.decoder = EventDecoder(chain_id, self.addresses, specs)
        self.projector = projector
        self.pipeline = EventPipeline(session, self.decoder, projector, log_prefix)
        self.cursors = IndexerCursorRepository(session)
        self.raw_events = RawEventRepository(session)

        self.scanner = BlockRangeScanner(self, batch_delay=batch_delay)
        self.watch_loop = WatchLoop(self)

    @property
    def is_watching(self) -> bool:
        return self.watch_loop.is_watching

    # ====================================================================
    # Pipeline hooks used by the scanner, watch loop and reconciler
    # ====================================================================

    async def fetch_logs(self, from_block: int, to_block: int) -> list[RawLog]:
        return await self.client.get_logs(
            self.addresses, from_block, to_block, self.log_topics
        )

    async def process_log(self, log: RawLog, block: BlockInfo) -> LogOutcome:
        return await self.pipeline.process_log(log, block)

    async def existing_blocks(self, from_block: int, to_block: int) -> set[int]:
        """
        Blocks in range whose logs the scanner may skip.

        None by default: every stored log is re-checked so a derived
        record that went missing, or a log rolled back while others in
        its block committed, is restored by the next reindex.
        """
        return set()

    def clamp_start_block(self, block_number: int) -> int:
        return block_number

    # ====================================================================
    # Cursor
    # ====================================================================

    async def last_processed_block(self) -> int:
        cursor = await self.cursors.get_or_create(
            self.chain_id, self.contract_address, self.indexer_name
        )
        await self.session.commit()
        return cursor.last_processed_block

    async def advance_cursor(self, block_number: int) -> None:
        try:
            cursor = await self.cursors.get_or_create(
                self.chain_id, self.contract_address, self.indexer_name
            )
            await self.cursors.advance(cursor, block_number)
            await self.session.commit()
        except DATABASE_ERRORS as e:
            await self.session.rollback()
            logger.error(f"{self.log_prefix} Failed to advance cursor: {e}")
            capture_exception(e, chain_id=self.chain_id, block_number=block_number)

    async def record_cursor_error(self, message: str) -> None:
        try:
            cursor = await self.cursors.get_or_create(
                self.chain_id, self.contract_address, self.indexer_name
            )
            await self.cursors.record_error(cursor, message)
            await self.session.commit()
        except DATABASE_ERRORS as e:
            await self.session.rollback()
            logger.error(f"{self.log_prefix} Failed to record cursor error: {e}")

    # ====================================================================
    # Operations
    # ====================================================================

    async def index_from_timestamp(
        self,
        start_ts: int,
        end_ts: int | None = None,
        overwrite_existing: bool = False,
    ) -> ScanResult:
        """
        Backfill the blocks between two timestamps.

        Args:
            start_ts: Unix timestamp of the first block to index
            end_ts: Unix timestamp of the last block, None for the head
            overwrite_existing: Re-run blocks the indexer reports as indexed

        Returns:
            ScanResult
        """
        start_block = (await self.client.get_block_by_timestamp(start_ts)).number
        if end_ts is None:
            end_block = await self.client.get_block_number()
        else:
            end_block = (await self.client.get_block_by_timestamp(end_ts)).number
        start_block = self.clamp_start_block(start_block)

        logger.info(
            f"{self.log_prefix} Indexing blocks {start_block} to {end_block} "
            f"({format_unix(start_ts)} to {format_unix(end_ts)})"
        )
        return await self.scanner.scan(start_block, end_block, overwrite_existing)

    async def index_blocks(self, blocks: Iterable[int]) -> ScanResult:
        """
        Replay specific blocks, re-checking every stored event.

        Returns:
            Merged ScanResult over every contiguous run
        """
        runs = contiguous_runs(blocks)
        if not runs:
            return ScanResult(from_block=0, to_block=-1)

        logger.info(
            f"{self.log_prefix} Indexing {sum(e - s + 1 for s, e in runs)} "
            f"specific block(s) in {len(runs)} run(s)"
        )
        result = ScanResult(from_block=runs[0][0], to_block=runs[-1][1])
        for start, end in runs:
            result.merge(
                await self.scanner.scan(start, end, overwrite_existing=True)
            )
        return result

    async def catch_up(self) -> int | None:
        """
        Scan from the cursor to the head.

        Returns:
            The first block the watch loop should deliver, or None when
            the indexer has never run and should follow the head
        """
        last = await self.last_processed_block()
        if last <= 0:
            logger.info(
                f"{self.log_prefix} No cursor yet, following the chain head"
            )
            return None

        head = await self.client.get_block_number()
        if head > last:
            logger.info(
                f"{self.log_prefix} Catching up from block {last + 1} to {head}"
            )
            await self.scanner.scan(last + 1, head)
        return max(head, last) + 1

    def watch(self, from_block: int | None = None) -> bool:
        """Start live mode. A no-op while already watching."""
        return self.watch_loop.start(from_block=from_block)

    async def shutdown(self) -> None:
        await self.watch_loop.shutdown()
        logger.info(f"{self.log_prefix} Shut down")
