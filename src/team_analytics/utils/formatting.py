"""Number and currency formatting shared by insights, reports and the CLI."""

import math
from typing import Optional

DEFAULT_CURRENCY_SYMBOL = "₹"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (``round()`` rounds halves to even)."""
    return int(math.floor(value + 0.5))


def _group_indian(digits: str) -> str:
    # 12345678 -> 1,23,45,678
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_currency(amount: Optional[float], symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Format an amount with Indian digit grouping and no trailing zero decimals.

    >>> format_currency(150000)
    '₹1,50,000'
    >>> format_currency(-600.5)
    '-₹600.5'
    """
    value = float(amount or 0)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{sign}{symbol}{text}"


def format_percentage(value: Optional[float], digits: int = 1) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{digits}f}%"
