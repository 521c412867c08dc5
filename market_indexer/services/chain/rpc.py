"""
RPC Wrapper with Timeout and Retry Logic.

Every chain call goes through ``rpc_call_with_retry``. Reverts and
node replies rejecting an oversized log query fail on the first attempt
so the scanner can fall back to smaller ranges right away.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger
from web3.exceptions import ContractLogicError

from market_indexer.config.constants import (
    RPC_MAX_RETRIES,
    RPC_PERMANENT_ERROR_MARKERS,
    RPC_RETRY_DELAY_BASE,
    RPC_TIMEOUT,
)
from market_indexer.utils.exceptions import ChainRPCError, ChainTimeoutError

T = TypeVar("T")


def is_permanent_error(error: BaseException) -> bool:
    """Whether retrying the same request cannot succeed."""
    if isinstance(error, ContractLogicError):
        return True
    message = str(error).lower()
    return any(marker in message for marker in RPC_PERMANENT_ERROR_MARKERS)


async def with_timeout(
    coro: Awaitable[T],
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        ChainTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.warning(error_msg)
        raise ChainTimeoutError(error_msg) from e


async def rpc_call_with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = RPC_MAX_RETRIES,
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
    delay_base: float = RPC_RETRY_DELAY_BASE,
) -> T:
    """
    Execute RPC call with retry logic and timeout.

    Args:
        coro_factory: Factory function that returns a coroutine
        max_retries: Maximum number of attempts
        timeout: Timeout per attempt in seconds
        operation_name: Operation name for logging
        delay_base: Base of the exponential backoff, 0 disables sleeping

    Returns:
        Result of the RPC call

    Raises:
        ChainTimeoutError: If the last attempt timed out
        ChainRPCError: If all attempts fail, or one fails permanently
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            result = await with_timeout(
                coro_factory(),
                timeout=timeout,
                operation_name=f"{operation_name} (attempt {attempt + 1}/{max_retries})",
            )

            if attempt > 0:
                logger.success(
                    f"{operation_name} succeeded on attempt {attempt + 1}"
                )

            return result

        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e

            if is_permanent_error(e):
                logger.warning(f"{operation_name} rejected: {e}")
                raise ChainRPCError(f"{operation_name} rejected: {e}") from e

            if attempt < max_retries - 1:
                delay = delay_base ** attempt if delay_base else 0
                logger.warning(
                    f"{operation_name} failed on attempt {attempt + 1}/{max_retries}: {e}. "
                    f"Retrying in {delay}s..."
                )
                if delay:
                    await asyncio.sleep(delay)
            else:
                logger.error(
                    f"{operation_name} failed after {max_retries} attempts: {e}"
                )

    if isinstance(last_error, ChainTimeoutError):
        raise last_error
    raise ChainRPCError(
        f"{operation_name} failed after {max_retries} attempts: {last_error}"
    ) from last_error
