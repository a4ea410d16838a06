"""
Pure interval and timezone helpers.

All instants handled by the core are pendulum ``DateTime`` objects in UTC.
Wall-clock values are resolved through the tz database, never through the
process-local timezone.
"""

from datetime import datetime
from typing import List, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import ValidationError


def overlaps(a_start: DateTime, a_end: DateTime, b_start: DateTime, b_end: DateTime) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return b_start < a_end and b_end > a_start


def to_instant(value: datetime) -> DateTime:
    """
    Normalize an aware datetime to a UTC pendulum DateTime.

    Raises:
        ValidationError: If the value carries no timezone information
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"Datetime {value.isoformat()} must be timezone-aware")
    return pendulum.instance(value).in_timezone("UTC")


def zoned_wall_clock_to_instant(date_str: str, time_str: str, timezone: str) -> DateTime:
    """
    Resolve a wall-clock moment in a named timezone to an absolute instant.

    Args:
        date_str: Calendar date as YYYY-MM-DD
        time_str: Wall-clock time as HH:mm or HH:mm:ss, without offset
        timezone: IANA timezone identifier

    Returns:
        The UTC instant the timezone assigns to that wall-clock moment
    """
    local = pendulum.parse(f"{date_str}T{time_str}", tz=timezone)
    return local.in_timezone("UTC")


def local_dates_between(start: DateTime, end: DateTime, timezone: str) -> List[Date]:
    """
    List every local calendar date touched by the half-open range [start, end).

    The date of ``end`` is only included when ``end`` lies after that date's
    local midnight.
    """
    if start >= end:
        return []

    first = start.in_timezone(timezone).date()
    last = end.subtract(microseconds=1).in_timezone(timezone).date()

    dates: List[Date] = []
    current = first
    while current <= last:
        dates.append(current)
        current = current.add(days=1)

    return dates


def local_midnight(day: Date, timezone: str) -> DateTime:
    """Return the UTC instant of local midnight at the start of ``day``."""
    return pendulum.datetime(day.year, day.month, day.day, tz=timezone).in_timezone("UTC")


def local_day_bounds(first: Date, last: Date, timezone: str) -> Tuple[DateTime, DateTime]:
    """Return the instants spanning whole local days ``first`` through ``last``."""
    return local_midnight(first, timezone), local_midnight(last.add(days=1), timezone)
