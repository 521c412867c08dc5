"""
Repositories.

Keyed create-if-absent and read operations for every stored entity.
"""

from market_indexer.repositories.attestation_repository import (
    AttestationRepository,
)
from market_indexer.repositories.base import BaseRepository
from market_indexer.repositories.condition_repository import ConditionRepository
from market_indexer.repositories.indexer_cursor_repository import (
    IndexerCursorRepository,
)
from market_indexer.repositories.key_value_repository import KeyValueRepository
from market_indexer.repositories.limit_order_repository import (
    LimitOrderRepository,
)
from market_indexer.repositories.market_transaction_repository import (
    MarketTransactionRepository,
)
from market_indexer.repositories.position_repository import PositionRepository
from market_indexer.repositories.raw_event_repository import RawEventRepository

__all__ = [
    "AttestationRepository",
    "BaseRepository",
    "ConditionRepository",
    "IndexerCursorRepository",
    "KeyValueRepository",
    "LimitOrderRepository",
    "MarketTransactionRepository",
    "PositionRepository",
    "RawEventRepository",
]
