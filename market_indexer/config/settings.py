"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import re

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from market_indexer.config.constants import (
    ATTESTATION_CONTRACTS,
    ATTESTATION_START_BLOCKS,
    BATCH_DELAY_SECONDS,
    BLOCK_BATCH_SIZE,
    DEFAULT_REINDEX_WINDOW_SECONDS,
    LARGE_RANGE_CHUNK_SIZE,
    LARGE_RANGE_THRESHOLD,
    RECONCILER_FALLBACK_BLOCK_LOOKBACK,
    RECONCILER_INTERVAL_SECONDS,
    RECONCILER_LOOKBACK_SECONDS,
    RPC_MAX_RETRIES,
    RPC_RETRY_DELAY_BASE,
    RPC_TIMEOUT,
    WATCH_POLL_INTERVAL,
    WATCH_RECONNECT_DELAY,
)

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_ASYNC_DRIVERS = ("postgresql+asyncpg://", "sqlite+aiosqlite://")


def _normalize_addresses(value: dict[int, str]) -> dict[int, str]:
    normalized = {}
    for chain_id, address in value.items():
        if not _ADDRESS_RE.match(address):
            raise ValueError(
                f"Invalid contract address for chain {chain_id}: {address}"
            )
        normalized[int(chain_id)] = address.lower()
    return normalized


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Chains
    rpc_urls: dict[int, str] = Field(
        default_factory=dict,
        description="Chain id -> HTTP RPC URL",
    )
    prediction_market_contracts: dict[int, str] = Field(
        default_factory=dict,
        description="Chain id -> prediction market contract address",
    )
    resolver_contracts: dict[int, str] = Field(
        default_factory=dict,
        description="Chain id -> condition resolver contract address",
    )
    attestation_contracts: dict[int, str] = Field(
        default_factory=lambda: dict(ATTESTATION_CONTRACTS),
        description="Chain id -> attestation registry address",
    )
    attestation_start_blocks: dict[int, int] = Field(
        default_factory=lambda: dict(ATTESTATION_START_BLOCKS),
    )

    # Backfill
    block_batch_size: int = Field(default=BLOCK_BATCH_SIZE, gt=0)
    large_range_threshold: int = Field(default=LARGE_RANGE_THRESHOLD, gt=0)
    large_range_chunk_size: int = Field(default=LARGE_RANGE_CHUNK_SIZE, gt=0)
    batch_delay_seconds: float = Field(default=BATCH_DELAY_SECONDS, ge=0)
    default_reindex_window_seconds: int = Field(
        default=DEFAULT_REINDEX_WINDOW_SECONDS, gt=0
    )

    # Live mode
    watch_reconnect_delay: float = Field(default=WATCH_RECONNECT_DELAY, ge=0)
    watch_poll_interval: float = Field(default=WATCH_POLL_INTERVAL, gt=0)
    recreate_subscription_chains: list[int] = Field(
        default_factory=list,
        description="Chains whose failed subscription handle is discarded",
    )

    # Reconciler
    reconciler_interval_seconds: int = Field(
        default=RECONCILER_INTERVAL_SECONDS, gt=0
    )
    reconciler_fallback_block_lookback: int = Field(
        default=RECONCILER_FALLBACK_BLOCK_LOOKBACK, ge=0
    )
    reconciler_lookback_seconds: int = Field(
        default=RECONCILER_LOOKBACK_SECONDS, ge=0
    )
    reconciler_enable_watermark: bool = True
    reconcile_orphan_order_events: bool = Field(
        default=True,
        description="Retry fill/cancel events whose order was not indexed yet",
    )

    # RPC
    rpc_timeout: float = Field(default=RPC_TIMEOUT, gt=0)
    rpc_max_retries: int = Field(default=RPC_MAX_RETRIES, ge=1)
    rpc_retry_delay_base: float = Field(default=RPC_RETRY_DELAY_BASE, ge=0)

    # Redis (dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Health server
    health_host: str = "0.0.0.0"
    health_port: int = 8081

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/indexer.log"

    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are usable by the pipeline."""
        if not v.startswith(_ASYNC_DRIVERS):
            raise ValueError(
                "database_url must use an async driver "
                "(postgresql+asyncpg:// or sqlite+aiosqlite://)"
            )
        return v

    @field_validator(
        "prediction_market_contracts",
        "resolver_contracts",
        "attestation_contracts",
    )
    @classmethod
    def validate_contract_addresses(cls, v: dict[int, str]) -> dict[int, str]:
        """Validate and lowercase contract addresses."""
        return _normalize_addresses(v)

    @model_validator(mode="after")
    def validate_chunking(self) -> "Settings":
        """The chunked path must use bigger chunks than the batch path."""
        if self.large_range_chunk_size < self.block_batch_size:
            raise ValueError(
                "large_range_chunk_size must be >= block_batch_size"
            )
        return self

    def get_rpc_url(self, chain_id: int) -> str | None:
        return self.rpc_urls.get(chain_id)

    def configured_chains(self) -> list[int]:
        """Chains that have both an RPC URL and a prediction market."""
        return sorted(
            chain_id
            for chain_id in self.prediction_market_contracts
            if chain_id in self.rpc_urls
        )


settings = Settings()
