"""
Indexer constants.

Static chain tables and pipeline defaults.
"""

# ========================================================================
# SCANNER CONSTANTS
# ========================================================================

BLOCK_BATCH_SIZE = 100  # Blocks per get_logs batch on the common path
LARGE_RANGE_THRESHOLD = 1000  # Above this, switch to the chunked path
LARGE_RANGE_CHUNK_SIZE = 10000  # Blocks per chunk on the chunked path
BATCH_DELAY_SECONDS = 0.1  # Pause between attestation batches

# ========================================================================
# LIVE MODE / RECONCILER CONSTANTS
# ========================================================================

WATCH_RECONNECT_DELAY = 10  # Seconds before restarting a failed watcher
WATCH_POLL_INTERVAL = 2.0  # Seconds between head polls
RECONCILER_INTERVAL_SECONDS = 15
RECONCILER_FALLBACK_BLOCK_LOOKBACK = 10000
RECONCILER_LOOKBACK_SECONDS = 3600
DEFAULT_REINDEX_WINDOW_SECONDS = 2 * 24 * 60 * 60  # 2 days

# ========================================================================
# RPC CONSTANTS
# ========================================================================

RPC_TIMEOUT = 30.0
RPC_MAX_RETRIES = 3
RPC_RETRY_DELAY_BASE = 2

# Node replies that no retry can fix; the caller narrows the request instead
RPC_PERMANENT_ERROR_MARKERS = (
    "query returned more than",
    "block range",
    "range too large",
    "limit exceeded",
)

# ========================================================================
# ATTESTATION REGISTRY (EAS)
# ========================================================================

ATTESTATION_CONTRACTS: dict[int, str] = {
    1: "0xa1207f3bba224e2c9c3c6d5af63d0eb1582ce587",  # Ethereum
    11155111: "0xc2679fbd37d54388ce493f1db75320d236e1815e",  # Sepolia
    10: "0x4200000000000000000000000000000000000021",  # Optimism
    8453: "0x4200000000000000000000000000000000000021",  # Base
    42161: "0xbd75f629a22dc1ced33dda0b68c546a1c035c458",  # Arbitrum
    432: "0x1abef822a38cc8906557cd73788ab23a607ae104",
}

ATTESTATION_START_BLOCKS: dict[int, int] = {
    1: 16756720,
    11155111: 2958570,
    10: 107476600,
    8453: 3701279,
    42161: 367337046,
    432: 1,
}

PREDICTION_SCHEMA_ID = (
    "0x2dbb0921fa38ebc044ab0a7fe109442c456fb9ad39a68ce0a32f193744d17744"
)

# ========================================================================
# KEY-VALUE STORE KEYS
# ========================================================================

RECONCILER_LOG_PREFIX = "[Reconciler]"
RECONCILER_STATUS_KEY = "reconciler:position:status"
RECONCILER_LAST_RUN_KEY = "reconciler:position:last_run_at"


def reconciler_watermark_key(chain_id: int) -> str:
    """Key holding the last block the reconciler swept for a chain."""
    return f"reconciler:position:watermark:{chain_id}"

# ========================================================================
# DRAMATIQ TASK TIME LIMITS (milliseconds)
# ========================================================================

DRAMATIQ_TIME_LIMIT_STANDARD = 300_000  # 5 min
DRAMATIQ_TIME_LIMIT_REINDEX = 7_200_000  # 2 hours
DRAMATIQ_MAX_RETRIES = 3
DRAMATIQ_MIN_BACKOFF = 1_000  # 1 second
DRAMATIQ_MAX_BACKOFF = 60_000  # 1 minute

RECONCILER_JOB_ID = "position_reconciler"
