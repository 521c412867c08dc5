"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def unix_now() -> int:
    """Current unix timestamp in whole seconds."""
    return int(time.time())


def format_unix(timestamp: int | None) -> str:
    """Render a unix timestamp as ISO-8601 for log lines."""
    if timestamp is None:
        return "now"
    return datetime.fromtimestamp(timestamp, UTC).isoformat()
