"""
Indexer pipeline.

Scanner, live mode and per-family indexers built on the shared
decode -> dedup -> project pipeline.
"""

from market_indexer.services.indexer.attestation import AttestationIndexer
from market_indexer.services.indexer.base import BaseIndexer, contiguous_runs
from market_indexer.services.indexer.dedup import DedupKey, DedupStore
from market_indexer.services.indexer.pipeline import EventPipeline, LogOutcome
from market_indexer.services.indexer.prediction_market import (
    PredictionMarketIndexer,
)
from market_indexer.services.indexer.scanner import (
    BlockRangeScanner,
    ScanResult,
    batch_ranges,
)
from market_indexer.services.indexer.supervisor import IndexerSupervisor
from market_indexer.services.indexer.watch_loop import WatchLoop

__all__ = [
    "AttestationIndexer",
    "BaseIndexer",
    "BlockRangeScanner",
    "DedupKey",
    "DedupStore",
    "EventPipeline",
    "IndexerSupervisor",
    "LogOutcome",
    "PredictionMarketIndexer",
    "ScanResult",
    "WatchLoop",
    "batch_ranges",
    "contiguous_runs",
]
