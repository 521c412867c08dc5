"""
Key-value store model.

Small string settings owned by background processes (reconciler
watermarks, last run time, status).
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from market_indexer.models.base import Base, TimestampMixin


class KeyValue(TimestampMixin, Base):
    """Key-value pair."""

    __tablename__ = "key_value_store"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
