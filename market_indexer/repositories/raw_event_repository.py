"""
RawEvent repository.

Keyed lookups against the raw event log.
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.raw_event import NO_SCOPE, RawEvent
from market_indexer.repositories.base import BaseRepository


class RawEventRepository(BaseRepository[RawEvent]):
    """Repository for RawEvent entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(RawEvent, session)

    async def find_by_key(
        self,
        transaction_hash: str,
        block_number: int,
        log_index: int,
        scope: str = NO_SCOPE,
    ) -> RawEvent | None:
        """
        Find an event by its dedup key.

        Args:
            transaction_hash: Transaction hash (0x-hex, lowercase)
            block_number: Block number
            log_index: Log index within the block
            scope: Scope tag, empty for none

        Returns:
            RawEvent or None
        """
        stmt = select(RawEvent).where(
            RawEvent.transaction_hash == transaction_hash,
            RawEvent.block_number == block_number,
            RawEvent.log_index == log_index,
            RawEvent.scope == scope,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_types(
        self,
        chain_id: int,
        event_types: Iterable[str],
        contract_addresses: Iterable[str] | None = None,
        from_block: int | None = None,
        limit: int | None = None,
    ) -> list[RawEvent]:
        """
        Events of the given types in replay order.

        Args:
            chain_id: Chain id
            event_types: Event names to include
            contract_addresses: Restrict to these contracts
            from_block: Only events at or after this block
            limit: Max rows

        Returns:
            Events ordered by (block_number, log_index)
        """
        stmt = select(RawEvent).where(
            RawEvent.chain_id == chain_id,
            RawEvent.event_type.in_(list(event_types)),
        )
        if contract_addresses is not None:
            stmt = stmt.where(
                RawEvent.contract_address.in_(list(contract_addresses))
            )
        if from_block is not None:
            stmt = stmt.where(RawEvent.block_number >= from_block)
        stmt = stmt.order_by(RawEvent.block_number, RawEvent.log_index)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_types(
        self, chain_id: int, event_types: Iterable[str]
    ) -> int:
        """Delete events of the given types for a chain. Returns row count."""
        stmt = delete(RawEvent).where(
            RawEvent.chain_id == chain_id,
            RawEvent.event_type.in_(list(event_types)),
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def record(self, **data: Any) -> RawEvent:
        """Insert a new raw event."""
        return await self.create(**data)
