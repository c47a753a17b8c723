"""
Time utilities for epoch-millisecond timestamps.

Persisted grant deadlines are stored as integer epoch milliseconds; these
helpers convert them for logging and countdown display.
"""

import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """
    Convert epoch milliseconds to an aware UTC datetime.

    Args:
        timestamp_ms: Epoch milliseconds

    Returns:
        UTC datetime
    """
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def format_timestamp(timestamp_ms: int) -> str:
    """
    Format epoch milliseconds for logging.

    Args:
        timestamp_ms: Epoch milliseconds

    Returns:
        ISO8601 formatted string, or the raw number when it falls outside
        the datetime range
    """
    try:
        return ms_to_datetime(timestamp_ms).isoformat()
    except (OverflowError, ValueError, OSError):
        return str(timestamp_ms)


def format_remaining(remaining_ms: int) -> str:
    """
    Format a remaining duration as ``m:ss`` for the countdown.

    Negative durations clamp to ``0:00``.
    """
    remaining_ms = max(0, remaining_ms)
    minutes = remaining_ms // 60000
    seconds = (remaining_ms % 60000) // 1000
    return f"{minutes}:{seconds:02d}"
