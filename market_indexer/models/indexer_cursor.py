"""
Indexer Cursor model.

Tracks the last processed block of each indexer instance.
"""

from sqlalchemy import BigInteger, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import AddressType


class IndexerCursor(TimestampMixin, Base):
    """
    Tracks indexing progress.

    Used to:
    - Resume backfill after restart
    - Pick the catch-up range before live mode starts
    - Surface the last batch error per indexer
    """

    __tablename__ = "indexer_cursor"
    __table_args__ = (
        UniqueConstraint(
            "chain_id",
            "contract_address",
            "indexer",
            name="uq_indexer_cursor_instance",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Instance identification
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    contract_address: Mapped[str] = mapped_column(AddressType, nullable=False)
    indexer: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # prediction_market, attestation

    last_processed_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    # Error tracking
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
