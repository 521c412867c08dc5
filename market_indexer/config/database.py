"""
Database engine and session factories.

The long-running indexer process shares one pooled engine; worker tasks
get a NullPool engine so connections never cross event loops.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from market_indexer.config.settings import settings


def create_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine for the configured database."""
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo,
        **kwargs,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create a session maker bound to ``engine``."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def create_task_engine() -> AsyncEngine:
    """Engine for dramatiq tasks, one connection per checkout."""
    return create_engine(poolclass=NullPool)


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)
