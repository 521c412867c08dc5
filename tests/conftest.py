"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment before settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RPC_URLS", '{"42161": "http://localhost:8545"}')
os.environ.setdefault(
    "PREDICTION_MARKET_CONTRACTS",
    '{"42161": "0xa1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1"}',
)
os.environ.setdefault(
    "RESOLVER_CONTRACTS",
    '{"42161": "0xb2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2"}',
)
os.environ.setdefault("RPC_RETRY_DELAY_BASE", "0")
os.environ.setdefault("BATCH_DELAY_SECONDS", "0")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from loguru import logger  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from market_indexer.config.database import create_session_maker  # noqa: E402
from market_indexer.models import Base  # noqa: E402
from market_indexer.services.telemetry import reset_error_counts  # noqa: E402
from tests.helpers import FakeChainClient  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session maker bound to the test engine."""
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    """Session used by the indexer under test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_client():
    """In-memory chain with 1,000 blocks, 12 seconds apart."""
    return FakeChainClient()


@pytest.fixture
def log_messages():
    """Messages logged while the test runs, as plain strings."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def clean_telemetry():
    reset_error_counts()
    yield
    reset_error_counts()
