"""
Dedup Store.

Find-then-branch gate on the raw event key
(transaction hash, block number, log index, scope).
"""

from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.raw_event import NO_SCOPE, RawEvent
from market_indexer.repositories import RawEventRepository
from market_indexer.services.events.types import (
    DecodedEvent,
    EventContext,
    event_from_payload,
)


class DedupKey(NamedTuple):
    transaction_hash: str
    block_number: int
    log_index: int
    scope: str = NO_SCOPE


def stored_event(row: RawEvent) -> DecodedEvent:
    """Rebuild the typed event a raw event row was recorded from."""
    return event_from_payload(
        EventContext(
            chain_id=row.chain_id,
            contract_address=row.contract_address,
            block_number=row.block_number,
            transaction_hash=row.transaction_hash,
            log_index=row.log_index,
            timestamp=row.timestamp,
        ),
        row.payload,
    )


class DedupStore:
    """
    Raw event dedup gate.

    Duplicates are detected by lookup, never by catching a unique
    constraint violation, so storage errors stay distinguishable from
    repeated delivery.
    """

    def __init__(self, session: AsyncSession, scope: str = NO_SCOPE) -> None:
        self.scope = scope
        self.events = RawEventRepository(session)

    def key_for(self, event: DecodedEvent) -> DedupKey:
        ctx = event.context
        return DedupKey(
            ctx.transaction_hash, ctx.block_number, ctx.log_index, self.scope
        )

    async def find(self, event: DecodedEvent) -> RawEvent | None:
        return await self.events.find_by_key(*self.key_for(event))

    async def record(self, event: DecodedEvent) -> RawEvent:
        """Insert the raw event. Caller must have checked ``find`` first."""
        ctx = event.context
        return await self.events.record(
            chain_id=ctx.chain_id,
            contract_address=ctx.contract_address,
            event_type=event.event_type,
            block_number=ctx.block_number,
            transaction_hash=ctx.transaction_hash,
            log_index=ctx.log_index,
            scope=self.scope,
            timestamp=ctx.timestamp,
            payload=event.to_payload(),
        )
