"""
Prediction Market Indexer.

Indexes the prediction market contract of one chain together with its
condition resolver.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.config.settings import settings
from market_indexer.repositories import (
    ConditionRepository,
    MarketTransactionRepository,
    PositionRepository,
)
from market_indexer.services.chain.client import ChainClient
from market_indexer.services.events.schema import (
    PREDICTION_MARKET_SPECS,
    RESOLVER_SPECS,
)
from market_indexer.services.events.types import (
    PREDICTION_MARKET_EVENT_TYPES,
    PredictionMinted,
)
from market_indexer.services.indexer.base import BaseIndexer
from market_indexer.services.indexer.dedup import stored_event
from market_indexer.services.projector.core import DomainProjector
from market_indexer.utils.exceptions import UnsupportedChainError


class PredictionMarketIndexer(BaseIndexer):
    """Indexer for positions, limit orders and condition resolution."""

    indexer_name = "prediction_market"

    def __init__(
        self,
        chain_id: int,
        session: AsyncSession,
        client: ChainClient,
        market_address: str | None = None,
        resolver_address: str | None = None,
    ) -> None:
        market_address = market_address or settings.prediction_market_contracts.get(
            chain_id
        )
        if not market_address:
            raise UnsupportedChainError(
                f"No prediction market contract configured for chain {chain_id}"
            )
        resolver_address = resolver_address or settings.resolver_contracts.get(
            chain_id
        )

        addresses = [market_address]
        specs = list(PREDICTION_MARKET_SPECS)
        if resolver_address:
            addresses.append(resolver_address)
            specs.extend(RESOLVER_SPECS)

        super().__init__(
            chain_id=chain_id,
            session=session,
            client=client,
            contract_address=market_address,
            addresses=addresses,
            specs=specs,
            projector=DomainProjector(session, chain_id),
            log_prefix=f"[PredictionMarketIndexer:{chain_id}]",
        )
        self.resolver_address = resolver_address.lower() if resolver_address else None

    async def clear_existing(self) -> None:
        """
        Delete positions, legs and prediction market events for the chain.

        Open interest the stored mints added is taken back off their
        conditions, so a rescan adds it again exactly once.
        """
        released = await self._release_open_interest()
        transactions = await MarketTransactionRepository(
            self.session
        ).delete_for_chain(self.chain_id)
        positions = await PositionRepository(self.session).delete_for_chain(
            self.chain_id
        )
        events = await self.raw_events.delete_by_types(
            self.chain_id, [cls.event_type for cls in PREDICTION_MARKET_EVENT_TYPES]
        )
        await self.session.commit()

        logger.warning(
            f"{self.log_prefix} Cleared {positions} positions, "
            f"{events} events and {transactions} transactions, "
            f"released open interest on {released} condition(s)"
        )

    async def _release_open_interest(self) -> int:
        """Subtract every stored mint's collateral from its conditions."""
        rows = await self.raw_events.find_by_types(
            self.chain_id, [PredictionMinted.event_type]
        )
        conditions = ConditionRepository(self.session)
        updated = 0
        for row in rows:
            event = stored_event(row)
            updated += await conditions.increment_open_interest(
                {leg.condition_id for leg in event.legs},
                -event.total_collateral,
            )
        return updated
