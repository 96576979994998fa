"""Shared time helpers.

Envelope timestamps are persisted and compared across process restarts, so
they use timezone-aware UTC wall-clock time. In-process deadlines (retry
wakeups, submit and shutdown timeouts) use ``time.monotonic()`` instead.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware).

    Returns:
        A timezone-aware datetime object representing the current time in UTC.

    Example:
        >>> from durable_workqueue.core.utils import utc_now
        >>> utc_now().tzinfo is not None
        True
    """
    return datetime.now(timezone.utc)


def to_aware_utc(dt: datetime) -> datetime:
    """Convert any datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: A datetime object (naive or timezone-aware).

    Returns:
        A timezone-aware datetime object in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_seconds(duration: float | timedelta) -> float:
    """Normalize a duration given as seconds or a timedelta to float seconds."""
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def format_duration(seconds: float) -> str:
    """Render a duration compactly for log messages.

    Example:
        >>> format_duration(0.25)
        '250ms'
        >>> format_duration(75)
        '1m15s'
    """
    if seconds < 0:
        seconds = 0.0
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.1f}s".replace(".0s", "s")
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m{secs}s" if secs else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m" if minutes else f"{hours}h"
