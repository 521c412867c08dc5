"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from market_indexer.models.attestation import Attestation
from market_indexer.models.base import Base
from market_indexer.models.condition import Condition
from market_indexer.models.indexer_cursor import IndexerCursor
from market_indexer.models.key_value import KeyValue
from market_indexer.models.limit_order import LimitOrder, LimitOrderStatus
from market_indexer.models.market_transaction import (
    MINT_TRANSACTION,
    MarketTransaction,
)
from market_indexer.models.position import Position, PositionStatus
from market_indexer.models.prediction import Prediction
from market_indexer.models.raw_event import NO_SCOPE, RawEvent

__all__ = [
    "Attestation",
    "Base",
    "Condition",
    "IndexerCursor",
    "KeyValue",
    "LimitOrder",
    "LimitOrderStatus",
    "MINT_TRANSACTION",
    "MarketTransaction",
    "NO_SCOPE",
    "Position",
    "PositionStatus",
    "Prediction",
    "RawEvent",
]
