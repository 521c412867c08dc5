"""
Telemetry sink.

Fire-and-forget exception reporting. Reports go to the loguru error
stream with their context bound, and per-type counters back the health
endpoint. Nothing here may raise into the pipeline.
"""

from collections import Counter
from typing import Any

from loguru import logger

_error_counts: Counter[str] = Counter()


def capture_exception(error: BaseException, **context: Any) -> None:
    """
    Report an exception without blocking or failing the caller.

    Args:
        error: Exception to report
        **context: Extra fields (chain_id, block_number, ...)
    """
    try:
        _error_counts[type(error).__name__] += 1
        logger.opt(exception=error).bind(**context).error(
            f"[Telemetry] {type(error).__name__}: {error} {context or ''}"
        )
    except Exception as e:  # pragma: no cover - last resort
        logger.warning(f"[Telemetry] Failed to report exception: {e}")


def error_counts() -> dict[str, int]:
    """Snapshot of reported exceptions by type."""
    return dict(_error_counts)


def reset_error_counts() -> None:
    _error_counts.clear()
