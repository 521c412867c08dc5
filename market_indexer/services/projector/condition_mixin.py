"""
Domain Projector Condition Mixin.

Oracle submission and resolution; both write their fields once.
"""

from loguru import logger

from market_indexer.services.events.types import MarketResolved, MarketSubmitted


class ConditionMixin:
    """Mixin providing condition projections."""

    async def apply_market_submitted(self, event: MarketSubmitted) -> None:
        condition = await self.conditions.get_by_id(event.condition_id)
        if condition is None:
            logger.warning(
                f"{self.log_prefix} Assertion for unknown condition "
                f"{event.condition_id}"
            )
            return
        if condition.assertion_id is not None:
            logger.debug(
                f"{self.log_prefix} Condition {event.condition_id} already "
                f"has assertion {condition.assertion_id}"
            )
            return

        condition.assertion_id = event.assertion_id
        condition.assertion_timestamp = event.context.timestamp
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Condition {event.condition_id} submitted "
            f"(assertion={event.assertion_id})"
        )

    async def apply_market_resolved(self, event: MarketResolved) -> None:
        condition = await self.conditions.get_by_id(event.condition_id)
        if condition is None:
            logger.warning(
                f"{self.log_prefix} Resolution for unknown condition "
                f"{event.condition_id}"
            )
            return
        if condition.settled:
            logger.debug(
                f"{self.log_prefix} Condition {event.condition_id} already settled"
            )
            return

        condition.settled = True
        condition.resolved_to_yes = event.resolved_to_yes
        condition.settled_at = event.context.timestamp
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Condition {event.condition_id} resolved "
            f"to {'YES' if event.resolved_to_yes else 'NO'}"
        )

    async def condition_projected(
        self, event: MarketSubmitted | MarketResolved
    ) -> bool:
        condition = await self.conditions.get_by_id(event.condition_id)
        if condition is None:
            return True
        if isinstance(event, MarketSubmitted):
            return condition.assertion_id is not None
        return condition.settled
