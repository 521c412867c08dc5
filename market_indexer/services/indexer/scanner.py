"""
Block Range Scanner.

Drives historical indexing over a block range: batches of B blocks with
a per-block fallback, and large chunks with lazy block fetches once the
range is big enough that most blocks are empty.
"""

import asyncio
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from market_indexer.config.settings import settings
from market_indexer.services.chain.types import BlockCache, RawLog
from market_indexer.services.indexer.pipeline import LogOutcome
from market_indexer.services.telemetry import capture_exception

if TYPE_CHECKING:
    from market_indexer.services.indexer.base import BaseIndexer


@dataclass
class ScanResult:
    """Totals for one scanner run."""

    from_block: int
    to_block: int
    outcomes: Counter = field(default_factory=Counter)
    logs_seen: int = 0
    skipped_logs: int = 0
    failed_blocks: list[int] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.outcomes[LogOutcome.PROJECTED] + self.outcomes[LogOutcome.HEALED]

    @property
    def failed_logs(self) -> int:
        return self.outcomes[LogOutcome.FAILED]

    def merge(self, other: "ScanResult") -> "ScanResult":
        self.from_block = min(self.from_block, other.from_block)
        self.to_block = max(self.to_block, other.to_block)
        self.outcomes.update(other.outcomes)
        self.logs_seen += other.logs_seen
        self.skipped_logs += other.skipped_logs
        self.failed_blocks.extend(other.failed_blocks)
        return self

    def summary(self) -> str:
        return (
            f"blocks {self.from_block}-{self.to_block}: "
            f"{self.logs_seen} logs, {self.processed} processed, "
            f"{self.outcomes[LogOutcome.DUPLICATE]} duplicates, "
            f"{self.skipped_logs} skipped, {self.failed_logs} failed, "
            f"{len(self.failed_blocks)} failed blocks"
        )


def batch_ranges(from_block: int, to_block: int, size: int) -> list[tuple[int, int]]:
    """Split [from_block, to_block] into inclusive ranges of ``size`` blocks."""
    return [
        (start, min(start + size - 1, to_block))
        for start in range(from_block, to_block + 1, size)
    ]


class BlockRangeScanner:
    """
    Sequential scanner for one indexer instance.

    Every block in the range is requested exactly once on the happy path.
    A failed batch is re-requested block by block; a failed block is
    reported and skipped, left to the reconciler or a manual replay.
    """

    def __init__(
        self,
        indexer: "BaseIndexer",
        batch_size: int | None = None,
        large_range_threshold: int | None = None,
        chunk_size: int | None = None,
        batch_delay: float = 0.0,
    ) -> None:
        self.indexer = indexer
        self.batch_size = batch_size or settings.block_batch_size
        self.large_range_threshold = (
            large_range_threshold or settings.large_range_threshold
        )
        self.chunk_size = chunk_size or settings.large_range_chunk_size
        self.batch_delay = batch_delay
        self.log_prefix = f"[Scanner:{indexer.log_prefix.strip('[]')}]"

    async def scan(
        self,
        from_block: int,
        to_block: int,
        overwrite_existing: bool = False,
    ) -> ScanResult:
        """
        Index every block in [from_block, to_block].

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            overwrite_existing: Re-run logs in blocks the indexer reports
                as indexed instead of skipping them

        Returns:
            ScanResult with per-outcome counts
        """
        result = ScanResult(from_block=from_block, to_block=to_block)
        if to_block < from_block:
            logger.info(f"{self.log_prefix} Nothing to scan ({from_block}-{to_block})")
            return result

        total = to_block - from_block + 1
        cache = self.indexer.client.block_cache()

        if total > self.large_range_threshold:
            logger.info(
                f"{self.log_prefix} Large range of {total} blocks, "
                f"scanning in chunks of {self.chunk_size}"
            )
            await self._scan_chunked(
                from_block, to_block, overwrite_existing, cache, result
            )
        else:
            await self._scan_batched(
                from_block, to_block, overwrite_existing, cache, result
            )

        logger.success(
            f"{self.log_prefix} Scan complete, {result.summary()} "
            f"({len(cache)} blocks fetched)"
        )
        return result

    async def _scan_batched(
        self,
        from_block: int,
        to_block: int,
        overwrite_existing: bool,
        cache: BlockCache,
        result: ScanResult,
    ) -> None:
        ranges = batch_ranges(from_block, to_block, self.batch_size)
        for i, (start, end) in enumerate(ranges):
            skip = await self._existing_blocks(start, end, overwrite_existing)

            try:
                logs = await self.indexer.fetch_logs(start, end)
            except Exception as e:
                logger.warning(
                    f"{self.log_prefix} Batch {start}-{end} failed ({e}), "
                    f"falling back to per-block queries"
                )
                await self._scan_blocks(start, end, skip, cache, result)
            else:
                await self._process_logs(logs, skip, cache, result)
                await self.indexer.advance_cursor(end)

            logger.debug(
                f"{self.log_prefix} Batch {i + 1}/{len(ranges)} "
                f"({start}-{end}) done"
            )
            if self.batch_delay and i + 1 < len(ranges):
                await asyncio.sleep(self.batch_delay)

    async def _scan_blocks(
        self,
        from_block: int,
        to_block: int,
        skip: set[int],
        cache: BlockCache,
        result: ScanResult,
    ) -> None:
        failed: list[int] = []
        for block_number in range(from_block, to_block + 1):
            try:
                logs = await self.indexer.fetch_logs(block_number, block_number)
            except Exception as e:
                logger.error(
                    f"{self.log_prefix} Block {block_number} failed, skipping: {e}"
                )
                capture_exception(
                    e,
                    chain_id=self.indexer.chain_id,
                    block_number=block_number,
                    stage="get_logs",
                )
                failed.append(block_number)
                continue
            await self._process_logs(logs, skip, cache, result)

        result.failed_blocks.extend(failed)
        await self.indexer.advance_cursor(to_block)
        if failed:
            await self.indexer.record_cursor_error(
                f"get_logs failed for blocks {', '.join(map(str, failed))}"
            )

    async def _scan_chunked(
        self,
        from_block: int,
        to_block: int,
        overwrite_existing: bool,
        cache: BlockCache,
        result: ScanResult,
    ) -> None:
        ranges = batch_ranges(from_block, to_block, self.chunk_size)
        for i, (start, end) in enumerate(ranges):
            try:
                logs = await self.indexer.fetch_logs(start, end)
            except Exception as e:
                logger.warning(
                    f"{self.log_prefix} Chunk {start}-{end} failed ({e}), "
                    f"rescanning in batches of {self.batch_size}"
                )
                await self._scan_batched(
                    start, end, overwrite_existing, cache, result
                )
                continue

            skip = await self._existing_blocks(start, end, overwrite_existing)
            await self._process_logs(logs, skip, cache, result)
            await self.indexer.advance_cursor(end)

            logger.info(
                f"{self.log_prefix} Chunk {i + 1}/{len(ranges)} ({start}-{end}): "
                f"{len(logs)} logs"
            )

    async def _existing_blocks(
        self, from_block: int, to_block: int, overwrite_existing: bool
    ) -> set[int]:
        if overwrite_existing:
            return set()
        return await self.indexer.existing_blocks(from_block, to_block)

    async def _process_logs(
        self,
        logs: Iterable[RawLog],
        skip: set[int],
        cache: BlockCache,
        result: ScanResult,
    ) -> None:
        for log in logs:
            result.logs_seen += 1
            if log.block_number in skip:
                result.skipped_logs += 1
                continue

            try:
                block = await cache.get(log.block_number)
            except Exception as e:
                logger.error(
                    f"{self.log_prefix} Could not fetch block {log.block_number} "
                    f"for tx {log.transaction_hash}: {e}"
                )
                capture_exception(
                    e,
                    chain_id=self.indexer.chain_id,
                    block_number=log.block_number,
                    transaction_hash=log.transaction_hash,
                    stage="get_block",
                )
                result.outcomes[LogOutcome.FAILED] += 1
                continue

            outcome = await self.indexer.process_log(log, block)
            result.outcomes[outcome] += 1
