"""
Attestation model.

Prediction attestations from the attestation registry, one row per uid.
"""

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from market_indexer.models.base import Base, TimestampMixin
from market_indexer.models.types import AddressType, HashType


class Attestation(TimestampMixin, Base):
    """
    Attestation entity.

    Raw ``data`` is kept next to the exploded schema fields so rows can
    be re-decoded if the schema interpretation changes.
    """

    __tablename__ = "attestation"
    __table_args__ = (
        Index("ix_attestation_market", "market_address", "market_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    uid: Mapped[str] = mapped_column(HashType, nullable=False, unique=True)
    chain_id: Mapped[int] = mapped_column(nullable=False, default=0)

    attester: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )
    recipient: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )
    time: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    transaction_hash: Mapped[str] = mapped_column(HashType, nullable=False)
    schema_id: Mapped[str] = mapped_column(HashType, nullable=False)

    data: Mapped[str] = mapped_column(Text, nullable=False)
    decoded_data_json: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )

    # Exploded schema fields
    market_address: Mapped[str | None] = mapped_column(
        AddressType, nullable=True
    )
    market_id: Mapped[str | None] = mapped_column(String(78), nullable=True)
    question_id: Mapped[str | None] = mapped_column(
        HashType, nullable=True, index=True
    )
    prediction: Mapped[str] = mapped_column(String(78), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
