"""
Indexer Supervisor.

Owns every indexer instance of the process, installs the only
SIGINT/SIGTERM handlers and shuts each instance down on exit.
"""

import asyncio
import signal
from collections.abc import Callable, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_indexer.config.settings import settings
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.indexer.attestation import AttestationIndexer
from market_indexer.services.indexer.base import BaseIndexer
from market_indexer.services.indexer.prediction_market import (
    PredictionMarketIndexer,
)
from market_indexer.services.telemetry import capture_exception
from market_indexer.utils.exceptions import UnsupportedChainError

ClientFactory = Callable[[int, str], ChainClient]

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class IndexerSupervisor:
    """Top-level coordinator for live indexing."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain_ids: Sequence[int] | None = None,
        include_attestations: bool = True,
        client_factory: ClientFactory = ChainClient,
    ) -> None:
        self.session_maker = session_maker
        self.chain_ids = list(chain_ids or settings.configured_chains())
        self.include_attestations = include_attestations
        self.client_factory = client_factory

        self.clients: dict[int, ChainClient] = {}
        self.indexers: list[BaseIndexer] = []
        self._sessions: list[AsyncSession] = []
        self._stop = asyncio.Event()
        self._signals_installed = False

    def build(self) -> list[BaseIndexer]:
        """
        Create one indexer per chain and contract family.

        Raises:
            UnsupportedChainError: A chain has no RPC URL or contract
        """
        if not self.chain_ids:
            raise UnsupportedChainError("No chains configured")

        for chain_id in self.chain_ids:
            rpc_url = settings.get_rpc_url(chain_id)
            if not rpc_url:
                raise UnsupportedChainError(f"No RPC URL configured for chain {chain_id}")
            client = self.client_factory(chain_id, rpc_url)
            self.clients[chain_id] = client

            self.indexers.append(
                PredictionMarketIndexer(chain_id, self._new_session(), client)
            )
            if self.include_attestations and chain_id in settings.attestation_contracts:
                self.indexers.append(
                    AttestationIndexer(chain_id, self._new_session(), client)
                )

        logger.info(
            f"[Supervisor] Built {len(self.indexers)} indexer(s) "
            f"for chains {self.chain_ids}"
        )
        return self.indexers

    def _new_session(self) -> AsyncSession:
        session = self.session_maker()
        self._sessions.append(session)
        return session

    async def start(self) -> None:
        """Catch each indexer up from its cursor, then hand off to live mode."""
        if not self.indexers:
            self.build()

        for indexer in self.indexers:
            try:
                from_block = await indexer.catch_up()
            except Exception as e:
                logger.error(f"{indexer.log_prefix} Catch-up failed: {e}")
                capture_exception(e, chain_id=indexer.chain_id, stage="catch_up")
                from_block = None
            indexer.watch(from_block=from_block)

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in _SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown, sig)
        self._signals_installed = True

    def remove_signal_handlers(self) -> None:
        if not self._signals_installed:
            return
        loop = asyncio.get_running_loop()
        for sig in _SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        self._signals_installed = False

    def request_shutdown(self, sig: signal.Signals | None = None) -> None:
        if sig is not None:
            logger.info(f"[Supervisor] Received {sig.name}, shutting down")
        self._stop.set()

    async def wait(self) -> None:
        await self._stop.wait()

    async def shutdown(self) -> None:
        """Stop every watch loop and close the indexer sessions."""
        for indexer in self.indexers:
            try:
                await indexer.shutdown()
            except Exception as e:
                logger.error(f"{indexer.log_prefix} Error during shutdown: {e}")

        for session in self._sessions:
            await session.close()
        self._sessions.clear()
        self.remove_signal_handlers()
        logger.info("[Supervisor] All indexers stopped")

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM."""
        self.install_signal_handlers()
        try:
            await self.start()
            await self.wait()
        finally:
            await self.shutdown()
