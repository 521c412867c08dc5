"""
Chain access.

ChainClient wraps the RPC node; RawLog/BlockInfo are what the rest of
the pipeline consumes.
"""

from market_indexer.services.chain.client import ChainClient, LogSubscription
from market_indexer.services.chain.rpc import rpc_call_with_retry, with_timeout
from market_indexer.services.chain.types import BlockCache, BlockInfo, RawLog

__all__ = [
    "BlockCache",
    "BlockInfo",
    "ChainClient",
    "LogSubscription",
    "RawLog",
    "rpc_call_with_retry",
    "with_timeout",
]
