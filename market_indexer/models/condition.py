"""
Condition model.

A single yes/no outcome unit referenced by prediction legs. Rows are
seeded externally; the indexer only maintains settlement, assertion and
open interest columns.
"""

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import AddressType, HashType, UintType


class Condition(TimestampMixin, Base):
    """
    Condition entity.

    Attributes:
        id: bytes32 condition id (0x-hex)
        chain_id: Chain of the resolver
        question: Human readable question
        end_time: Unix time trading ends
        settled: Write-once settlement flag
        resolved_to_yes: Outcome, valid once settled
        settled_at: Resolution block timestamp
        assertion_id: Oracle assertion id, write-once
        assertion_timestamp: Assertion block timestamp
        open_interest: Collateral committed by minted positions
        resolver: Resolver contract address
    """

    __tablename__ = "condition"

    id: Mapped[str] = mapped_column(HashType, primary_key=True)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    question: Mapped[str] = mapped_column(Text, nullable=False, default="")
    short_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    end_time: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )

    # Settlement, set once by the resolution event
    settled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    resolved_to_yes: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    settled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Oracle assertion, set once by the submission event
    assertion_id: Mapped[str | None] = mapped_column(HashType, nullable=True)
    assertion_timestamp: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )

    open_interest: Mapped[Decimal] = mapped_column(
        UintType, nullable=False, default=Decimal(0)
    )
    resolver: Mapped[str | None] = mapped_column(
        AddressType, nullable=True, index=True
    )

    def __repr__(self) -> str:
        return (
            f"<Condition(id={self.id[:10]}..., settled={self.settled}, "
            f"open_interest={self.open_interest})>"
        )
