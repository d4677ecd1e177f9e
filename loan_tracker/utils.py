"""Utility functions for the loan tracker.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding calendar months, counting the months between two
dates and reading ISO dates that may or may not carry a time component.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, getcontext

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_iso_date(value: str) -> date:
    """Parse an ISO date string into a ``date``.

    Both plain dates (``"2024-03-15"``) and full timestamps
    (``"2024-03-15T10:22:01.000Z"``) are accepted; only the date part is kept.

    Raises
    ------
    ValueError
        If the string does not start with a valid ``YYYY-MM-DD`` date.
    """
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Number of whole calendar months from ``start`` to ``end``.

    Negative when ``end`` is before ``start``. Only year and month are
    compared; the day of month is ignored.
    """
    return (end.year - start.year) * 12 + (end.month - start.month)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result
