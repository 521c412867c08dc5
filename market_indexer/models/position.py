"""
Position model.

A matched predictor/counterparty pair minted by the prediction market.
"""

from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import AddressType, HashType, UintStringType


if TYPE_CHECKING:
    from market_indexer.models.prediction import Prediction


class PositionStatus(StrEnum):
    """Position lifecycle status."""

    ACTIVE = "active"
    SETTLED = "settled"  # Burned, winner recorded
    CONSOLIDATED = "consolidated"  # Both sides held by one owner

    @property
    def is_terminal(self) -> bool:
        return self is not PositionStatus.ACTIVE


class Position(TimestampMixin, Base):
    """
    Position entity.

    Attributes:
        id: Primary key
        chain_id: Chain of the market contract
        market_address: Prediction market contract (lowercase)
        predictor: Maker address
        counterparty: Taker address
        predictor_token_id: Maker-side NFT id
        counterparty_token_id: Taker-side NFT id
        total_collateral: Combined collateral (decimal string)
        predictor_collateral: Maker collateral (decimal string)
        counterparty_collateral: Taker collateral (decimal string)
        ref_code: bytes32 referral code
        status: active / settled / consolidated
        predictor_won: Winner flag, set on settlement
        minted_at: Mint block timestamp
        settled_at: Burn or consolidation block timestamp
        ends_at: Latest end time of the referenced conditions
    """

    __tablename__ = "position"
    __table_args__ = (
        UniqueConstraint(
            "chain_id",
            "market_address",
            "predictor_token_id",
            "counterparty_token_id",
            name="uq_position_token_pair",
        ),
        Index("ix_position_chain_market", "chain_id", "market_address"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    market_address: Mapped[str] = mapped_column(AddressType, nullable=False)

    predictor: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )
    counterparty: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )
    predictor_token_id: Mapped[str] = mapped_column(
        UintStringType, nullable=False
    )
    counterparty_token_id: Mapped[str] = mapped_column(
        UintStringType, nullable=False
    )

    # Amounts
    total_collateral: Mapped[str] = mapped_column(
        UintStringType, nullable=False
    )
    predictor_collateral: Mapped[str | None] = mapped_column(
        UintStringType, nullable=True
    )
    counterparty_collateral: Mapped[str | None] = mapped_column(
        UintStringType, nullable=True
    )
    ref_code: Mapped[str | None] = mapped_column(HashType, nullable=True)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PositionStatus.ACTIVE.value,
        index=True,
    )
    predictor_won: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    minted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    settled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    ends_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    legs: Mapped[list["Prediction"]] = relationship(
        back_populates="position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_terminal(self) -> bool:
        return PositionStatus(self.status).is_terminal

    def __repr__(self) -> str:
        return (
            f"<Position(id={self.id}, chain={self.chain_id}, "
            f"tokens={self.predictor_token_id}/{self.counterparty_token_id}, "
            f"status={self.status})>"
        )
