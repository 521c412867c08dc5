"""
LimitOrder model.

An order placed on the prediction market, waiting for a counterparty.
"""

from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import AddressType, HashType, UintStringType


if TYPE_CHECKING:
    from market_indexer.models.prediction import Prediction


class LimitOrderStatus(StrEnum):
    """Limit order status. Only pending transitions."""

    PENDING = "pending"
    FILLED = "filled"
    CANCELLED = "cancelled"


class LimitOrder(TimestampMixin, Base):
    """
    LimitOrder entity.

    Keyed by (chain_id, market_address, order_id). A re-placed order id
    overwrites the placement fields of the existing row.
    """

    __tablename__ = "limit_order"
    __table_args__ = (
        UniqueConstraint(
            "chain_id",
            "market_address",
            "order_id",
            name="uq_limit_order_chain_market_id",
        ),
        Index("ix_limit_order_chain_status", "chain_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    market_address: Mapped[str] = mapped_column(AddressType, nullable=False)
    order_id: Mapped[str] = mapped_column(UintStringType, nullable=False)

    predictor: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )
    resolver: Mapped[str] = mapped_column(AddressType, nullable=False)
    predictor_collateral: Mapped[str] = mapped_column(
        UintStringType, nullable=False
    )
    counterparty_collateral: Mapped[str] = mapped_column(
        UintStringType, nullable=False
    )
    ref_code: Mapped[str | None] = mapped_column(HashType, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LimitOrderStatus.PENDING.value,
        index=True,
    )
    counterparty: Mapped[str | None] = mapped_column(
        AddressType, nullable=True
    )

    # Lifecycle timestamps and transactions
    placed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    filled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    cancelled_at: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )
    placed_tx_hash: Mapped[str] = mapped_column(HashType, nullable=False)
    filled_tx_hash: Mapped[str | None] = mapped_column(
        HashType, nullable=True
    )
    cancelled_tx_hash: Mapped[str | None] = mapped_column(
        HashType, nullable=True
    )

    legs: Mapped[list["Prediction"]] = relationship(
        back_populates="limit_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_pending(self) -> bool:
        return self.status == LimitOrderStatus.PENDING.value

    def __repr__(self) -> str:
        return (
            f"<LimitOrder(id={self.id}, chain={self.chain_id}, "
            f"order_id={self.order_id}, status={self.status})>"
        )
