"""
RawEvent model.

One row per observed contract log. Source of truth for every derived
entity; rows are never updated or deleted by the pipeline.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import AddressType, HashType

# Empty scope tag means "no logical group"
NO_SCOPE = ""


class RawEvent(TimestampMixin, Base):
    """
    Raw decoded contract log.

    Attributes:
        id: Primary key
        chain_id: Chain the log was emitted on
        contract_address: Emitting contract (lowercase)
        event_type: Decoded event name (PredictionMinted, ...)
        block_number: Block containing the log
        transaction_hash: Transaction that emitted the log
        log_index: Position of the log within the block
        timestamp: Block timestamp (unix seconds)
        scope: Optional logical group tag, empty for none
        payload: Decoded event fields as JSON
    """

    __tablename__ = "raw_event"
    __table_args__ = (
        UniqueConstraint(
            "transaction_hash",
            "block_number",
            "log_index",
            "scope",
            name="uq_raw_event_dedup_key",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    contract_address: Mapped[str] = mapped_column(
        AddressType, nullable=False
    )
    event_type: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )

    # Dedup key
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    transaction_hash: Mapped[str] = mapped_column(HashType, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    scope: Mapped[str] = mapped_column(
        String(64), nullable=False, default=NO_SCOPE
    )

    timestamp: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RawEvent(id={self.id}, type={self.event_type}, "
            f"block={self.block_number}, tx={self.transaction_hash[:10]}..., "
            f"log={self.log_index})>"
        )
