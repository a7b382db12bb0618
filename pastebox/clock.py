"""
Clock abstraction for TTL checks.
Production code reads wall-clock time; tests inject a fixed instant.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Default clock backed by the real system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant until explicitly moved."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, seconds: float) -> datetime:
        self.instant = self.instant + timedelta(seconds=seconds)
        return self.instant


def to_epoch_ms(instant: datetime) -> int:
    """
    Convert an aware datetime to integer milliseconds since the epoch.

    Sub-millisecond precision is truncated, never rounded up.
    """
    if instant.tzinfo is None:
        raise ValueError("instant must be timezone-aware")
    return (instant - EPOCH) // ONE_MS


def from_epoch_ms(ms: int) -> datetime:
    """Convert integer milliseconds since the epoch to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=int(ms))


def resolve_now(
    test_now_ms: Optional[str],
    clock: Clock,
    test_mode: bool,
) -> datetime:
    """
    Get current time, respecting TEST_MODE for deterministic testing.

    Args:
        test_now_ms: Value of the x-test-now-ms header (milliseconds since epoch)
        clock: Clock used when no override applies
        test_mode: Whether the override header is honoured at all

    Returns:
        Current datetime in UTC
    """
    if test_mode and test_now_ms is not None:
        try:
            return from_epoch_ms(int(test_now_ms))
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(f"Invalid x-test-now-ms header {test_now_ms!r}: {e}")

    return clock.now()


def to_iso(instant: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a Z suffix."""
    return instant.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
