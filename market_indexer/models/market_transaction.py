"""
MarketTransaction model.

Collateral movement recorded alongside a newly observed mint event.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import UintStringType

MINT_TRANSACTION = "mint"


class MarketTransaction(TimestampMixin, Base):
    """Collateral record keyed one-to-one by its raw event."""

    __tablename__ = "market_transaction"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    raw_event_id: Mapped[int] = mapped_column(
        ForeignKey("raw_event.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    collateral: Mapped[str] = mapped_column(UintStringType, nullable=False)
