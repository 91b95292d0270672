"""Common type definitions for the cartsource library."""

from collections.abc import Callable
from datetime import UTC, datetime

# Source of "now" for idle-time bookkeeping; injectable for tests
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current time in UTC."""
    return datetime.now(UTC)
