"""
Watch Loop.

Live mode for one indexer instance: a single log subscription feeding
the same pipeline as backfill, restarted after a fixed delay on error.
"""

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from market_indexer.config.settings import settings
from market_indexer.services.chain.client import LogSubscription
from market_indexer.services.chain.types import RawLog
from market_indexer.services.telemetry import capture_exception

if TYPE_CHECKING:
    from market_indexer.services.indexer.base import BaseIndexer


class WatchLoop:
    """
    Owns the live subscription and its lifecycle state.

    Attributes:
        is_watching: True while a subscription is delivering logs
        subscription: Current handle, kept across restarts unless the
            chain is configured to recreate it
    """

    def __init__(
        self,
        indexer: "BaseIndexer",
        reconnect_delay: float | None = None,
        recreate_on_error: bool | None = None,
    ) -> None:
        self.indexer = indexer
        self.reconnect_delay = (
            settings.watch_reconnect_delay
            if reconnect_delay is None
            else reconnect_delay
        )
        if recreate_on_error is None:
            recreate_on_error = (
                indexer.chain_id in settings.recreate_subscription_chains
            )
        self.recreate_on_error = recreate_on_error
        self.log_prefix = f"[WatchLoop:{indexer.log_prefix.strip('[]')}]"

        self.is_watching = False
        self.subscription: LogSubscription | None = None
        self._restart_task: asyncio.Task | None = None
        self._stopped = False

    def start(self, from_block: int | None = None) -> bool:
        """
        Start live delivery.

        Args:
            from_block: First block to deliver; None follows the head

        Returns:
            False if a subscription is already active (no-op)
        """
        if self.is_watching:
            logger.debug(f"{self.log_prefix} Already watching, ignoring start")
            return False

        self._stopped = False
        if self.subscription is not None:
            logger.info(f"{self.log_prefix} Resuming existing subscription")
            self.subscription.restart()
        else:
            self.subscription = self.indexer.client.subscribe_logs(
                self.indexer.addresses,
                self._on_logs,
                self._on_error,
                from_block=from_block,
                topics=self.indexer.log_topics,
            )
        self.is_watching = True
        logger.info(f"{self.log_prefix} Watching for new events")
        return True

    async def _on_logs(self, logs: list[RawLog]) -> None:
        cache = self.indexer.client.block_cache()
        last_block = None
        skipped: list[int] = []
        for log in logs:
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
                    stage="watch",
                )
                skipped.append(log.block_number)
                continue
            await self.indexer.process_log(log, block)
            last_block = log.block_number

        # Hold the cursor below the first block that was not indexed
        if skipped and last_block is not None:
            last_block = min(last_block, min(skipped) - 1)

        if last_block is not None:
            await self.indexer.advance_cursor(last_block)
        if skipped:
            await self.indexer.record_cursor_error(
                f"block fetch failed for blocks {sorted(set(skipped))}"
            )

    async def _on_error(self, error: Exception) -> None:
        logger.error(f"{self.log_prefix} Subscription error: {error}")
        capture_exception(error, chain_id=self.indexer.chain_id, stage="watch")
        self.is_watching = False

        resume_from = None
        if self.recreate_on_error and self.subscription is not None:
            resume_from = self.subscription.next_block
            self.subscription.unsubscribe()
            self.subscription = None
            logger.info(f"{self.log_prefix} Discarded failed subscription handle")

        if self._stopped:
            return
        logger.info(
            f"{self.log_prefix} Reconnecting in {self.reconnect_delay} seconds"
        )
        self._restart_task = asyncio.create_task(self._restart_later(resume_from))

    async def _restart_later(self, from_block: int | None) -> None:
        await asyncio.sleep(self.reconnect_delay)
        if self._stopped:
            return
        self.start(from_block=from_block)

    async def shutdown(self) -> None:
        """Stop the subscription; a batch being delivered completes first."""
        self._stopped = True

        task, self._restart_task = self._restart_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if self.subscription is not None:
            await self.subscription.aclose()
            self.subscription = None

        if self.is_watching:
            logger.info(f"{self.log_prefix} Stopped watching")
        self.is_watching = False
