"""Utility helpers for the analytics engine."""

from .datetime import now_utc, ensure_aware, to_iso_string, ceil_days, Clock, SystemClock, FixedClock
from .formatting import format_currency, format_percentage, round_half_up

__all__ = [
    "now_utc",
    "ensure_aware",
    "to_iso_string",
    "ceil_days",
    "Clock",
    "SystemClock",
    "FixedClock",
    "format_currency",
    "format_percentage",
    "round_half_up",
]
