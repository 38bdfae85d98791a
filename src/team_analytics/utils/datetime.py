"""Datetime utilities with consistent UTC timezone handling.

This module provides centralized datetime functions to ensure all datetime
operations in the analytics engine are timezone-aware and use UTC consistently,
plus the injectable clocks used for window resolution and cache expiry.
"""

import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


def now_utc() -> datetime:
    """Return current datetime in UTC timezone.

    Returns:
        Current datetime with timezone=UTC
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info.

    Args:
        dt: Datetime to convert, or None

    Returns:
        ISO format string with timezone, or None if input was None
    """
    if dt is None:
        return None

    return ensure_aware(dt).isoformat()


def ceil_days(delta: timedelta) -> int:
    """Whole days covered by a duration, rounding partial days up."""
    return math.ceil(delta.total_seconds() / 86400)


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return now_utc()


class FixedClock(Clock):
    """Manually driven clock for deterministic tests and replays."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = ensure_aware(start) if start else now_utc()

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime):
        self._now = ensure_aware(moment)

    def advance(self, delta: Optional[timedelta] = None, *, milliseconds: float = 0,
                seconds: float = 0, days: float = 0) -> datetime:
        """Move the clock forward and return the new time."""
        step = delta or timedelta()
        step += timedelta(milliseconds=milliseconds, seconds=seconds, days=days)
        self._now = self._now + step
        return self._now
