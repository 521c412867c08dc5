"""
Prediction model.

A single leg (condition id, outcome) of a position or limit order.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_indexer.models.base import Base
from market_indexer.models.types import HashType


if TYPE_CHECKING:
    from market_indexer.models.limit_order import LimitOrder
    from market_indexer.models.position import Position


class Prediction(Base):
    """Prediction leg."""

    __tablename__ = "prediction"
    __table_args__ = (
        UniqueConstraint(
            "position_id", "condition_id", name="uq_prediction_position_condition"
        ),
        UniqueConstraint(
            "limit_order_id",
            "condition_id",
            name="uq_prediction_limit_order_condition",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    condition_id: Mapped[str] = mapped_column(
        HashType, nullable=False, index=True
    )
    outcome_yes: Mapped[bool] = mapped_column(Boolean, nullable=False)
    chain_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    position_id: Mapped[int | None] = mapped_column(
        ForeignKey("position.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    limit_order_id: Mapped[int | None] = mapped_column(
        ForeignKey("limit_order.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    position: Mapped["Position | None"] = relationship(back_populates="legs")
    limit_order: Mapped["LimitOrder | None"] = relationship(
        back_populates="legs"
    )
