"""
Exception handling utilities.

Defines the indexer's exception taxonomy and categorized library
exception tuples for ``except`` sites.
"""

from aiohttp import ClientError
from sqlalchemy.exc import SQLAlchemyError
from web3.exceptions import Web3Exception


class IndexerError(Exception):
    """Base exception for indexer errors."""
    pass


class ChainRPCError(IndexerError):
    """Raised when a chain RPC call fails after all retries."""
    pass


class ChainTimeoutError(ChainRPCError):
    """Raised when a chain RPC call times out."""
    pass


class EventDecodeError(IndexerError):
    """A recognised event signature carried a malformed payload."""

    def __init__(
        self,
        event_name: str,
        transaction_hash: str,
        log_index: int,
        reason: str,
    ) -> None:
        self.event_name = event_name
        self.transaction_hash = transaction_hash
        self.log_index = log_index
        self.reason = reason
        super().__init__(
            f"Failed to decode {event_name} "
            f"(tx={transaction_hash} logIndex={log_index}): {reason}"
        )


class MissingEntityError(IndexerError):
    """An event referenced an order or position that is not indexed."""
    pass


class UnsupportedChainError(IndexerError):
    """No RPC endpoint or contract is configured for a chain."""
    pass


# Exception categories based on handling strategy

# Transient - fall back to per-block queries or reconnect later
RPC_ERRORS = (
    ChainRPCError,
    Web3Exception,
    ClientError,
    TimeoutError,
    ConnectionError,
)

# Storage failures - roll back the current log and continue
DATABASE_ERRORS = (
    SQLAlchemyError,
)


def is_transient(exc: Exception) -> bool:
    """
    Check if exception is a transient RPC failure.

    Args:
        exc: Exception to check

    Returns:
        True if the operation may succeed on retry
    """
    return isinstance(exc, RPC_ERRORS)


def is_database_error(exc: Exception) -> bool:
    """
    Check if exception came from the relational store.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a storage-layer failure
    """
    return isinstance(exc, DATABASE_ERRORS)
