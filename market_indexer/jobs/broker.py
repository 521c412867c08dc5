"""
Task queue broker.

Reindex and reconcile requests travel over Redis. A failed task is
retried with backoff unless its chain has no configuration.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, Retries, ShutdownNotifications
from loguru import logger

from market_indexer.config.constants import (
    DRAMATIQ_MAX_BACKOFF,
    DRAMATIQ_MAX_RETRIES,
    DRAMATIQ_MIN_BACKOFF,
)
from market_indexer.config.settings import settings
from market_indexer.utils.exceptions import UnsupportedChainError


def should_retry(retries_so_far: int, exception: BaseException) -> bool:
    """Retry transient failures; a chain without configuration never recovers."""
    if isinstance(exception, UnsupportedChainError):
        return False
    return retries_so_far < DRAMATIQ_MAX_RETRIES


def create_broker() -> RedisBroker:
    """
    Build the Redis broker used by every indexer actor.

    Workers get shutdown notifications so a running reindex can stop
    between batches, and the current message for task logging.
    """
    redis_broker = RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        db=settings.redis_db,
    )
    redis_broker.add_middleware(ShutdownNotifications())
    redis_broker.add_middleware(CurrentMessage())
    redis_broker.add_middleware(
        Retries(
            max_retries=DRAMATIQ_MAX_RETRIES,
            min_backoff=DRAMATIQ_MIN_BACKOFF,
            max_backoff=DRAMATIQ_MAX_BACKOFF,
            retry_when=should_retry,
        )
    )
    return redis_broker


broker = create_broker()
dramatiq.set_broker(broker)

logger.info(
    f"Task broker for reindex and reconcile on "
    f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
)
