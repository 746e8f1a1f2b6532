"""
UTC datetime utilities for consistent timezone handling.

All datetime values in the system should be timezone-aware UTC.
Use these helpers instead of datetime.now() or datetime.utcnow().
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def epoch_millis(dt: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch for dt (default: now); order numbers and photo names use it."""
    return int((dt or utc_now()).timestamp() * 1000)
