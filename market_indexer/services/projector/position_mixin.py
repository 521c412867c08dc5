"""
Domain Projector Position Mixin.

Position state machine: active on mint, settled on burn, consolidated
on consolidation.
"""

from loguru import logger

from market_indexer.models.position import Position, PositionStatus
from market_indexer.models.prediction import Prediction
from market_indexer.services.events.legs import unique_legs
from market_indexer.services.events.types import (
    PredictionBurned,
    PredictionConsolidated,
    PredictionMinted,
)


class PositionMixin:
    """Mixin providing position projections."""

    async def _find_minted_position(self, event: PredictionMinted) -> Position | None:
        return await self.positions.find_by_token_pair(
            self.chain_id,
            event.context.contract_address,
            str(event.maker_token_id),
            str(event.taker_token_id),
        )

    async def _find_position_by_tokens(
        self, event: PredictionBurned | PredictionConsolidated
    ) -> Position | None:
        return await self.positions.find_by_either_token(
            self.chain_id,
            event.context.contract_address,
            str(event.maker_token_id),
            str(event.taker_token_id),
        )

    async def apply_prediction_minted(self, event: PredictionMinted) -> None:
        """Create the position for a mint, with ends_at from its legs."""
        if await self._find_minted_position(event) is not None:
            logger.debug(
                f"{self.log_prefix} Position already exists for NFTs "
                f"{event.maker_token_id}/{event.taker_token_id}"
            )
            return

        condition_ids = [leg.condition_id for leg in event.legs]
        ends_at = await self.conditions.max_end_time(condition_ids)

        position = Position(
            chain_id=self.chain_id,
            market_address=event.context.contract_address,
            predictor=event.maker,
            counterparty=event.taker,
            predictor_token_id=str(event.maker_token_id),
            counterparty_token_id=str(event.taker_token_id),
            total_collateral=str(event.total_collateral),
            predictor_collateral=str(event.maker_collateral),
            counterparty_collateral=str(event.taker_collateral),
            ref_code=event.ref_code,
            status=PositionStatus.ACTIVE.value,
            predictor_won=None,
            minted_at=event.context.timestamp,
            settled_at=None,
            ends_at=ends_at,
            legs=[
                Prediction(
                    condition_id=leg.condition_id,
                    outcome_yes=leg.outcome_yes,
                    chain_id=self.chain_id,
                )
                for leg in unique_legs(event.legs)
            ],
        )
        self.session.add(position)
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Processed PredictionMinted: "
            f"{event.maker_token_id}, {event.taker_token_id} "
            f"(legs={len(event.legs)}, ends_at={ends_at})"
        )

    async def add_open_interest(self, event: PredictionMinted) -> None:
        """
        Add the mint's collateral to every referenced condition.

        Runs once per recorded mint, not per projection, so re-projecting
        a mint whose position went missing leaves open interest alone.
        """
        condition_ids = {leg.condition_id for leg in event.legs}
        updated = await self.conditions.increment_open_interest(
            condition_ids, event.total_collateral
        )
        logger.debug(
            f"{self.log_prefix} Open interest +{event.total_collateral} "
            f"on {updated} condition(s)"
        )

    async def apply_prediction_burned(self, event: PredictionBurned) -> None:
        position = await self._find_position_by_tokens(event)
        if position is None:
            logger.warning(
                f"{self.log_prefix} No position for burned NFTs "
                f"{event.maker_token_id}/{event.taker_token_id}"
            )
            return
        if position.is_terminal:
            logger.debug(
                f"{self.log_prefix} Position {position.id} already "
                f"{position.status}, ignoring burn"
            )
            return

        position.status = PositionStatus.SETTLED.value
        position.predictor_won = event.maker_won
        position.settled_at = event.context.timestamp
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Processed PredictionBurned: "
            f"{event.maker_token_id}, {event.taker_token_id}, "
            f"winner: {'maker' if event.maker_won else 'taker'}"
        )

    async def apply_prediction_consolidated(
        self, event: PredictionConsolidated
    ) -> None:
        position = await self._find_position_by_tokens(event)
        if position is None:
            logger.warning(
                f"{self.log_prefix} No position for consolidated NFTs "
                f"{event.maker_token_id}/{event.taker_token_id}"
            )
            return
        if position.is_terminal:
            logger.debug(
                f"{self.log_prefix} Position {position.id} already "
                f"{position.status}, ignoring consolidation"
            )
            return

        # Consolidation always records the predictor side as winner
        position.status = PositionStatus.CONSOLIDATED.value
        position.predictor_won = True
        position.settled_at = event.context.timestamp
        await self.session.flush()

        logger.info(
            f"{self.log_prefix} Processed PredictionConsolidated: "
            f"{event.maker_token_id}, {event.taker_token_id}"
        )

    async def position_projected(
        self, event: PredictionMinted | PredictionBurned | PredictionConsolidated
    ) -> bool:
        if isinstance(event, PredictionMinted):
            return await self._find_minted_position(event) is not None

        position = await self._find_position_by_tokens(event)
        return position is None or position.is_terminal
