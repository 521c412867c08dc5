"""
Condition repository.

Data access layer for Condition model.
"""

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.condition import Condition
from market_indexer.repositories.base import BaseRepository


class ConditionRepository(BaseRepository[Condition]):
    """Repository for Condition entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Condition, session)

    async def max_end_time(self, condition_ids: Iterable[str]) -> int | None:
        """
        Latest end time among known conditions.

        Args:
            condition_ids: Condition ids referenced by a position

        Returns:
            Max end_time, or None when none of the ids are known
        """
        ids = list(set(condition_ids))
        if not ids:
            return None
        stmt = select(func.max(Condition.end_time)).where(Condition.id.in_(ids))
        result = await self.session.execute(stmt)
        return result.scalar()

    async def increment_open_interest(
        self, condition_ids: Iterable[str], amount: int
    ) -> int:
        """
        Atomically add ``amount`` to open interest of each condition.

        Runs as one UPDATE so concurrent projections never lose writes.

        Args:
            condition_ids: Conditions to update (duplicates collapse)
            amount: Collateral to add

        Returns:
            Number of condition rows updated
        """
        ids = list(set(condition_ids))
        if not ids or amount == 0:
            return 0
        stmt = (
            update(Condition)
            .where(Condition.id.in_(ids))
            .values(open_interest=Condition.open_interest + Decimal(amount))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
