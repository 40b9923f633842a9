"""
Temporal key utilities for the Habit Insight Engine.

Month records are keyed by ``YYYY-MM`` and weekly plans by ISO week
``YYYY-Www``. Weeks start on Monday and weekday indexes are Monday-first
(0=Monday ... 6=Sunday) everywhere in the engine.
"""

import calendar
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union


WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
]

WEEKDAY_SHORT = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

_WEEK_KEY_RE = re.compile(r"^(\d{4})-W(\d{2})$")


def as_date(value: Union[date, datetime]) -> date:
    """Normalize a datetime or date to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def week_key(value: Union[date, datetime]) -> str:
    """
    ISO week key for a date.

    The ISO year can differ from the calendar year around New Year
    (e.g. 2026-12-31 belongs to 2026-W53, 2027-01-01 as well).

    Args:
        value: Date or datetime

    Returns:
        Key formatted as ``YYYY-Www``
    """
    iso_year, iso_week, _ = as_date(value).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def parse_week_key(key: str) -> Optional[date]:
    """Return the Monday of an ISO week key, or None when malformed."""
    match = _WEEK_KEY_RE.match(key or "")
    if not match:
        return None
    try:
        return date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
    except ValueError:
        return None


def month_key(year: int, month: int) -> str:
    """Month key formatted as ``YYYY-MM``."""
    return f"{year:04d}-{month:02d}"


def week_start(value: Union[date, datetime]) -> date:
    """Monday of the week containing the given date."""
    d = as_date(value)
    return d - timedelta(days=d.weekday())


def weekday_index(value: Union[date, datetime]) -> int:
    """Monday-indexed weekday (0=Monday, 6=Sunday)."""
    return as_date(value).weekday()


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def elapsed_days(year: int, month: int, today: Union[date, datetime]) -> int:
    """
    Number of days of a month that have started as of ``today``.

    The current day counts as elapsed (it is in progress). Future months
    have zero elapsed days, past months are fully elapsed.
    """
    today = as_date(today)
    if (year, month) > (today.year, today.month):
        return 0
    if (year, month) < (today.year, today.month):
        return days_in_month(year, month)
    return today.day


def recent_months(today: Union[date, datetime], count: int = 3) -> List[Tuple[int, int]]:
    """
    The ``count`` most recent (year, month) pairs ending at today's month,
    oldest first.
    """
    today = as_date(today)
    year, month = today.year, today.month
    months = []
    for _ in range(max(0, count)):
        months.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    months.reverse()
    return months


def is_weekend(weekday: int) -> bool:
    return weekday >= 5
