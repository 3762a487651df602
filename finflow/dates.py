"""
Calendar and month-key helpers.

A MonthKey is the canonical "YYYY-MM" string for a calendar month.
Because it is zero-padded, lexicographic order is chronological order,
so sorted(keys) walks the ledger from oldest to newest month.

All comparisons in the engine are done on datetime.date values.
Anything carrying a time component is reduced to its calendar date
first so that month boundaries never shift with the clock.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from typing import Iterator, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from finflow.errors import MonthKeyError


MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

# A missing day in partial date strings ("2024-03") resolves to day 1.
# Year and month must come from the text itself: both defaults are tried and
# a result that follows the default is rejected.
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 1))


def parse_calendar_date(value: object) -> Optional[date]:
    """
    Reduce a date-like value to a calendar date.

    Accepts date, datetime (time is dropped) or text in any format
    dateutil understands. Returns None when the value cannot be read,
    including text that names no year or no month ("10", "March").
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        first, second = (date_parser.parse(text, default=d) for d in _PARSE_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if (first.year, first.month) != (second.year, second.month):
        return None
    return first.date()


def today_or(today: Optional[date] = None) -> date:
    """Return the given reference day, or the local calendar date."""
    if today is None:
        return date.today()
    if isinstance(today, datetime):
        return today.date()
    return today


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def current_month_key(today: Optional[date] = None) -> str:
    ref = today_or(today)
    return month_key(ref.year, ref.month)


def month_key_for(value: object, today: Optional[date] = None) -> str:
    """
    Month key of a date-like value.

    Falls back to the current month when the value cannot be parsed,
    so one bad record lands somewhere visible instead of aborting.
    """
    parsed = parse_calendar_date(value)
    if parsed is None:
        return current_month_key(today)
    return month_key(parsed.year, parsed.month)


def parse_month_key(key: str) -> tuple[int, int]:
    """Split "YYYY-MM" into (year, month). Raises MonthKeyError."""
    if not isinstance(key, str):
        raise MonthKeyError(key)
    match = MONTH_KEY_PATTERN.match(key)
    if not match:
        raise MonthKeyError(key)
    return int(match.group(1)), int(match.group(2))


def is_month_key(key: object) -> bool:
    return isinstance(key, str) and MONTH_KEY_PATTERN.match(key) is not None


def first_of_month(year: int, month: int) -> date:
    return date(year, month, 1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of (year, month)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def add_months(year: int, month: int, count: int) -> tuple[int, int]:
    shifted = first_of_month(year, month) + relativedelta(months=count)
    return shifted.year, shifted.month


def next_month(year: int, month: int) -> tuple[int, int]:
    return add_months(year, month, 1)


def previous_month_key(key: str) -> str:
    year, month = parse_month_key(key)
    return month_key(*add_months(year, month, -1))


def months_between(start: tuple[int, int], end: tuple[int, int]) -> int:
    """Number of month steps from start to end (negative if end is earlier)."""
    return (end[0] - start[0]) * 12 + (end[1] - start[1])


def iter_months(year: int, month: int, count: int) -> Iterator[tuple[int, int]]:
    """Yield `count` consecutive (year, month) pairs starting at (year, month)."""
    for offset in range(count):
        yield add_months(year, month, offset)
