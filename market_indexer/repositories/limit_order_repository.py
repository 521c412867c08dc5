"""
LimitOrder repository.

Data access layer for LimitOrder model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.limit_order import LimitOrder
from market_indexer.repositories.base import BaseRepository


class LimitOrderRepository(BaseRepository[LimitOrder]):
    """Repository for LimitOrder entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LimitOrder, session)

    async def find_by_order_id(
        self,
        chain_id: int,
        market_address: str,
        order_id: str,
    ) -> LimitOrder | None:
        """
        Find order by its on-chain key.

        Args:
            chain_id: Chain id
            market_address: Market contract (lowercase)
            order_id: Order id (decimal string)

        Returns:
            LimitOrder or None
        """
        stmt = select(LimitOrder).where(
            LimitOrder.chain_id == chain_id,
            LimitOrder.market_address == market_address,
            LimitOrder.order_id == order_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
