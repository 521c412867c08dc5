"""
Domain Projector Order Mixin.

Limit order state machine: pending on placement, then filled or
cancelled exactly once.
"""

from loguru import logger

from market_indexer.models.limit_order import LimitOrder, LimitOrderStatus
from market_indexer.models.prediction import Prediction
from market_indexer.services.events.legs import unique_legs
from market_indexer.services.events.types import (
    OrderCancelled,
    OrderFilled,
    OrderPlaced,
)


class OrderMixin:
    """Mixin providing limit order projections."""

    async def _find_order(
        self, event: OrderPlaced | OrderFilled | OrderCancelled
    ) -> LimitOrder | None:
        return await self.orders.find_by_order_id(
            self.chain_id,
            event.context.contract_address,
            str(event.order_id),
        )

    def _order_legs(self, event: OrderPlaced) -> list[Prediction]:
        return [
            Prediction(
                condition_id=leg.condition_id,
                outcome_yes=leg.outcome_yes,
                chain_id=self.chain_id,
            )
            for leg in unique_legs(event.legs)
        ]

    async def apply_order_placed(self, event: OrderPlaced) -> None:
        """
        Create or replace the order keyed by (chain, market, order id).

        A re-placement refreshes placement fields and legs but never
        moves a filled or cancelled order back to pending.
        """
        placement = {
            "predictor": event.maker,
            "resolver": event.resolver,
            "predictor_collateral": str(event.maker_collateral),
            "counterparty_collateral": str(event.taker_collateral),
            "ref_code": event.ref_code,
            "placed_at": event.context.timestamp,
            "placed_tx_hash": event.context.transaction_hash,
        }

        order = await self._find_order(event)
        if order is None:
            order = LimitOrder(
                chain_id=self.chain_id,
                market_address=event.context.contract_address,
                order_id=str(event.order_id),
                status=LimitOrderStatus.PENDING.value,
                legs=self._order_legs(event),
                **placement,
            )
            self.session.add(order)
            await self.session.flush()
            logger.info(
                f"{self.log_prefix} Processed OrderPlaced: "
                f"orderId={event.order_id}, maker={event.maker}"
            )
            return

        for key, value in placement.items():
            setattr(order, key, value)

        current = [(p.condition_id, p.outcome_yes) for p in order.legs]
        new_legs = self._order_legs(event)
        if current != [(p.condition_id, p.outcome_yes) for p in new_legs]:
            order.legs.clear()
            await self.session.flush()
            order.legs.extend(new_legs)
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Refreshed OrderPlaced: orderId={event.order_id} "
            f"(status={order.status})"
        )

    async def apply_order_filled(self, event: OrderFilled) -> None:
        order = await self._find_order(event)
        if order is None or not order.is_pending:
            logger.warning(
                f"{self.log_prefix} OrderFilled: no matching pending order "
                f"for orderId={event.order_id}"
                + (f" (status={order.status})" if order else "")
            )
            return

        order.status = LimitOrderStatus.FILLED.value
        order.counterparty = event.taker
        order.filled_at = event.context.timestamp
        order.filled_tx_hash = event.context.transaction_hash
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Processed OrderFilled: "
            f"orderId={event.order_id}, taker={event.taker}"
        )

    async def apply_order_cancelled(self, event: OrderCancelled) -> None:
        order = await self._find_order(event)
        if order is None or not order.is_pending:
            logger.warning(
                f"{self.log_prefix} OrderCancelled: no matching pending order "
                f"for orderId={event.order_id}"
                + (f" (status={order.status})" if order else "")
            )
            return

        order.status = LimitOrderStatus.CANCELLED.value
        order.cancelled_at = event.context.timestamp
        order.cancelled_tx_hash = event.context.transaction_hash
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Processed OrderCancelled: orderId={event.order_id}"
        )

    async def order_projected(
        self, event: OrderPlaced | OrderFilled | OrderCancelled
    ) -> bool:
        order = await self._find_order(event)
        if isinstance(event, OrderPlaced):
            return order is not None
        # Missing orders stay unresolved until the placement is indexed
        return order is None or not order.is_pending
