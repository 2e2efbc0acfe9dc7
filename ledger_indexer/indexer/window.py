"""Time window filter for signature block times."""

from __future__ import annotations

from datetime import datetime, timezone


def block_time_to_datetime(block_time: int) -> datetime:
    """Unix seconds (RPC blockTime) to an aware UTC datetime."""
    return datetime.fromtimestamp(block_time, tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def in_range(block_time: datetime, start_time: datetime, end_time: datetime) -> bool:
    """True when start_time <= block_time <= end_time (both ends inclusive)."""
    return start_time <= block_time <= end_time


def before_window(block_time: datetime, start_time: datetime) -> bool:
    """
    True once a newest-first signature stream has passed the window's lower bound.

    Every later signature in that stream is at least as old, so nothing after
    it can be in range.
    """
    return block_time < start_time
