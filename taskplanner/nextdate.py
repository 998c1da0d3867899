"""Date helpers and the repeat rules that move a task to its next date."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Callable, Union

DATE_FORMAT = "%Y%m%d"
MAX_DAYS_INTERVAL = 400

_DATE_RE = re.compile(r"\d{8}")
_INT_RE = re.compile(r"[+-]?\d+")


class NextDateError(ValueError):
    """Raised when a next date cannot be computed from a date and a rule."""


def parse_date(value: str) -> date:
    """Parse a strict YYYYMMDD string into a date."""
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        raise ValueError(f"invalid date: {value!r}")
    try:
        return date(int(value[:4]), int(value[4:6]), int(value[6:]))
    except ValueError as exc:
        raise ValueError(f"invalid date: {value!r}") from exc


def format_date(day: date) -> str:
    """Format a date as YYYYMMDD."""
    return f"{day.year:04d}{day.month:02d}{day.day:02d}"


def normalize_date(moment: Union[date, datetime]) -> Union[date, datetime]:
    """Drop the time of day, keeping year, month, day and time zone."""
    if isinstance(moment, datetime):
        return moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return moment


def _add_year(day: date) -> date:
    year = day.year + 1
    try:
        return day.replace(year=year)
    except ValueError:
        # 29 February in a non-leap year rolls over to 1 March.
        return date(year, 3, 1)


def _day_step(days: int) -> Callable[[date], date]:
    delta = timedelta(days=days)

    def step(day: date) -> date:
        return day + delta

    return step


def next_date(now: Union[date, datetime], date: str, repeat: str) -> str:
    """Return the first date after ``now`` reached from ``date`` by ``repeat``.

    Supported rules are ``d <days>`` (1 to 400 days) and ``y`` (yearly).
    """
    try:
        start = parse_date(date)
    except ValueError:
        raise NextDateError(f"invalid date format: {date}") from None

    if not repeat:
        raise NextDateError("empty repeat rule")

    parts = repeat.split(" ")
    rule = parts[0]
    if rule == "d":
        if len(parts) != 2:
            raise NextDateError("invalid repeat format for 'd'")
        if not _INT_RE.fullmatch(parts[1]):
            raise NextDateError("invalid days in repeat rule")
        days = int(parts[1])
        if days <= 0 or days > MAX_DAYS_INTERVAL:
            raise NextDateError("invalid days in repeat rule")
        step = _day_step(days)
    elif rule == "y":
        step = _add_year
    else:
        raise NextDateError("invalid or unsupported repeat rule")

    today = now.date() if isinstance(now, datetime) else now
    try:
        candidate = step(start)
        while candidate <= today:
            candidate = step(candidate)
    except (OverflowError, ValueError):
        raise NextDateError("next date out of range") from None
    return format_date(candidate)