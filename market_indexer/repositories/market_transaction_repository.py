"""
MarketTransaction repository.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.market_transaction import MarketTransaction
from market_indexer.models.raw_event import RawEvent
from market_indexer.repositories.base import BaseRepository


class MarketTransactionRepository(BaseRepository[MarketTransaction]):
    """Repository for MarketTransaction entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(MarketTransaction, session)

    async def record(
        self, raw_event_id: int, type: str, collateral: str
    ) -> MarketTransaction:
        """Record the collateral movement of a raw event once."""
        existing = await self.get_by(raw_event_id=raw_event_id)
        if existing is not None:
            return existing
        return await self.create(
            raw_event_id=raw_event_id, type=type, collateral=collateral
        )

    async def delete_for_chain(self, chain_id: int) -> int:
        event_ids = select(RawEvent.id).where(RawEvent.chain_id == chain_id)
        result = await self.session.execute(
            delete(MarketTransaction).where(
                MarketTransaction.raw_event_id.in_(event_ids)
            )
        )
        return result.rowcount or 0
