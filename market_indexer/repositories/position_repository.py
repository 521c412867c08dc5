"""
Position repository.

Data access layer for Position model.
"""

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.position import Position
from market_indexer.models.prediction import Prediction
from market_indexer.repositories.base import BaseRepository


class PositionRepository(BaseRepository[Position]):
    """Repository for Position entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Position, session)

    async def find_by_token_pair(
        self,
        chain_id: int,
        market_address: str,
        predictor_token_id: str,
        counterparty_token_id: str,
    ) -> Position | None:
        """Find the position minted for an exact token pair."""
        stmt = select(Position).where(
            Position.chain_id == chain_id,
            Position.market_address == market_address,
            Position.predictor_token_id == predictor_token_id,
            Position.counterparty_token_id == counterparty_token_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_either_token(
        self,
        chain_id: int,
        market_address: str,
        predictor_token_id: str,
        counterparty_token_id: str,
    ) -> Position | None:
        """
        Find a position holding either token id.

        Burn and consolidation events may reference a pair whose other
        side was transferred, so either id identifies the position.
        """
        stmt = (
            select(Position)
            .where(
                Position.chain_id == chain_id,
                Position.market_address == market_address,
                or_(
                    Position.predictor_token_id == predictor_token_id,
                    Position.counterparty_token_id == counterparty_token_id,
                ),
            )
            .order_by(Position.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_without_ends_at(self, limit: int = 500) -> list[Position]:
        """Positions whose expiry could not be computed at mint time."""
        stmt = (
            select(Position)
            .where(Position.ends_at.is_(None))
            .order_by(Position.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def distinct_chain_ids(self) -> list[int]:
        """Chains that have at least one position."""
        stmt = select(Position.chain_id).distinct()
        result = await self.session.execute(stmt)
        return sorted(result.scalars().all())

    async def delete_for_chain(self, chain_id: int) -> int:
        """
        Delete positions and their legs for a chain.

        Returns:
            Number of positions deleted
        """
        position_ids = select(Position.id).where(Position.chain_id == chain_id)
        await self.session.execute(
            delete(Prediction).where(Prediction.position_id.in_(position_ids))
        )
        result = await self.session.execute(
            delete(Position).where(Position.chain_id == chain_id)
        )
        return result.rowcount or 0
