"""
Domain Projector Core.

Applies decoded events to derived aggregates. Every projection is
keyed by the event's own payload, so applying an event twice or in a
different order relative to unrelated events gives the same state.
"""

from collections.abc import Awaitable, Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from market_indexer.models.market_transaction import MINT_TRANSACTION
from market_indexer.models.raw_event import RawEvent
from market_indexer.repositories import (
    ConditionRepository,
    LimitOrderRepository,
    MarketTransactionRepository,
    PositionRepository,
)
from market_indexer.services.events.types import (
    DecodedEvent,
    MarketResolved,
    MarketSubmitted,
    OrderCancelled,
    OrderFilled,
    OrderPlaced,
    PredictionBurned,
    PredictionConsolidated,
    PredictionMinted,
)
from market_indexer.services.projector.condition_mixin import ConditionMixin
from market_indexer.services.projector.order_mixin import OrderMixin
from market_indexer.services.projector.position_mixin import PositionMixin

Handler = Callable[[DecodedEvent], Awaitable[None]]
PresenceCheck = Callable[[DecodedEvent], Awaitable[bool]]


class ProjectorBase:
    """
    Dispatch shared by every projector.

    Subclasses fill ``handlers`` and ``presence_checks`` keyed by event
    class; ``validate`` runs at startup so a tracked event without a
    handler fails fast instead of being dropped silently.
    """

    handlers: dict[type[DecodedEvent], Handler]
    presence_checks: dict[type[DecodedEvent], PresenceCheck]

    def validate(self, event_classes: Iterable[type[DecodedEvent]]) -> None:
        missing = [
            cls.__name__
            for cls in event_classes
            if cls not in self.handlers or cls not in self.presence_checks
        ]
        if missing:
            raise ValueError(
                f"{type(self).__name__} has no projection for: {', '.join(missing)}"
            )

    async def project(self, event: DecodedEvent) -> None:
        """Apply ``event`` to derived state."""
        await self.handlers[type(event)](event)

    async def is_projected(self, event: DecodedEvent) -> bool:
        """
        Whether the derived state ``event`` should produce is present.

        False means an already recorded event needs its projection run
        again (self-healing path).
        """
        return await self.presence_checks[type(event)](event)

    async def record_transaction(
        self, event: DecodedEvent, raw_event: RawEvent
    ) -> None:
        """Hook for side records written once per new raw event."""
        return None


class DomainProjector(PositionMixin, OrderMixin, ConditionMixin, ProjectorBase):
    """Projector for prediction market and resolver events."""

    def __init__(self, session: AsyncSession, chain_id: int) -> None:
        self.session = session
        self.chain_id = chain_id
        self.log_prefix = f"[PredictionMarketIndexer:{chain_id}]"

        self.positions = PositionRepository(session)
        self.orders = LimitOrderRepository(session)
        self.conditions = ConditionRepository(session)
        self.transactions = MarketTransactionRepository(session)

        self.handlers = {
            PredictionMinted: self.apply_prediction_minted,
            PredictionBurned: self.apply_prediction_burned,
            PredictionConsolidated: self.apply_prediction_consolidated,
            OrderPlaced: self.apply_order_placed,
            OrderFilled: self.apply_order_filled,
            OrderCancelled: self.apply_order_cancelled,
            MarketSubmitted: self.apply_market_submitted,
            MarketResolved: self.apply_market_resolved,
        }
        self.presence_checks = {
            PredictionMinted: self.position_projected,
            PredictionBurned: self.position_projected,
            PredictionConsolidated: self.position_projected,
            OrderPlaced: self.order_projected,
            OrderFilled: self.order_projected,
            OrderCancelled: self.order_projected,
            MarketSubmitted: self.condition_projected,
            MarketResolved: self.condition_projected,
        }

    async def record_transaction(
        self, event: DecodedEvent, raw_event: RawEvent
    ) -> None:
        if isinstance(event, PredictionMinted):
            await self.transactions.record(
                raw_event.id, MINT_TRANSACTION, str(event.total_collateral)
            )
            await self.add_open_interest(event)
