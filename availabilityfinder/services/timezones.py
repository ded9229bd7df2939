"""
Timezone resolution and rendering.

Request dates are calendar dates in the caller's timezone, not UTC
instants; this module turns them into absolute query bounds and renders
merged busy periods back into the caller's zone.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Sequence, Tuple

import pendulum
from pendulum import DateTime

from ..domain.exceptions import ConfigurationError
from ..domain.models import BusyPeriod


def resolve_timezone(name: Any) -> str:
    """
    Validate an IANA timezone identifier.

    Raises:
        ConfigurationError: If the identifier is unknown
    """
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"Invalid timezone: {name!r}")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise ConfigurationError(f"Invalid timezone: {name!r}") from exc
    return name


def to_calendar_date(value: Any) -> date:
    """
    Reduce a date-like input to its calendar date, as written.

    Accepts ``YYYY-MM-DD`` strings, ISO datetime strings, ``date`` and
    ``datetime`` objects. ``2025-11-17T10:30:00Z`` is November 17 whatever
    the target timezone.

    Raises:
        ConfigurationError: If the value is not a recognizable date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value.strip(), exact=True)
        except ValueError as exc:
            raise ConfigurationError(f"Malformed date: {value!r}") from exc
        if isinstance(parsed, datetime):
            return parsed.date()
        if isinstance(parsed, date):
            return parsed
    raise ConfigurationError(f"Malformed date: {value!r}")


def day_bounds(start_date: Any, end_date: Any, timezone: str) -> Tuple[DateTime, DateTime]:
    """
    Return (start of ``start_date``, end of ``end_date``) in ``timezone``.
    """
    timezone = resolve_timezone(timezone)
    first = to_calendar_date(start_date)
    last = to_calendar_date(end_date)
    if last < first:
        raise ConfigurationError(f"End date {last} is before start date {first}")

    time_min = pendulum.datetime(first.year, first.month, first.day, tz=timezone).start_of("day")
    time_max = pendulum.datetime(last.year, last.month, last.day, tz=timezone).end_of("day")
    return time_min, time_max


def dates_in_range(start_date: Any, end_date: Any) -> List[date]:
    """Return every calendar date from start to end, inclusive."""
    first = to_calendar_date(start_date)
    last = to_calendar_date(end_date)
    days: List[date] = []
    current = pendulum.date(first.year, first.month, first.day)
    while current <= last:
        days.append(current)
        current = current.add(days=1)
    return days


def convert_periods(periods: Sequence[BusyPeriod], timezone: str) -> List[BusyPeriod]:
    """Render merged periods in ``timezone`` without moving the instants."""
    timezone = resolve_timezone(timezone)
    return [period.in_timezone(timezone) for period in periods]
