"""
Abstract base class for calendar availability providers.

Any calendar backend (Google, Microsoft, ...) implements this ABC and is
selected by the connection's provider tag.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Callable, List, Sequence

import pendulum
from pendulum import DateTime

from ..domain.models import BusyPeriod, CalendarCredentials

logger = logging.getLogger(__name__)

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


async def run_blocking(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a synchronous HTTP call in the default thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


def to_utc_string(value: DateTime) -> str:
    """Render an instant as an ISO-8601 UTC string (``...Z``)."""
    return value.in_timezone("UTC").to_iso8601_string()


def parse_utc(value: str) -> DateTime:
    """
    Parse an ISO-8601 timestamp into a UTC DateTime.

    Fractions longer than microseconds (e.g. ``.0000000``) are truncated.

    Raises:
        ValueError: If the value cannot be parsed as a datetime
    """
    parsed = pendulum.parse(_EXCESS_FRACTION.sub(r"\1", value))
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Could not parse datetime: {value}")
    return parsed.in_timezone("UTC")


class AvailabilityProvider(ABC):
    """
    Uniform "fetch busy periods in UTC" capability over one calendar backend.
    """

    name: str = ""

    @abstractmethod
    async def fetch_busy_periods(
        self,
        credentials: CalendarCredentials,
        calendar_ids: Sequence[str],
        time_min: DateTime,
        time_max: DateTime,
    ) -> List[BusyPeriod]:
        """Return busy periods for the given calendars.

        Args:
            credentials: Usable credentials for the connection.
            calendar_ids: Calendars to query.
            time_min: Start of the query window (any timezone).
            time_max: End of the query window (any timezone).

        Returns:
            Busy periods as UTC instants. Events missing a start or end
            are dropped.
        """

    def _busy_period_from(self, start: str | None, end: str | None) -> BusyPeriod | None:
        """Build a UTC busy period from raw provider strings, or None if unusable."""
        if not isinstance(start, str) or not isinstance(end, str) or not start or not end:
            logger.debug("Dropping %s event without start/end", self.name)
            return None
        try:
            return BusyPeriod(start=parse_utc(start), end=parse_utc(end))
        except ValueError as exc:
            logger.debug("Dropping %s event with unparseable time: %s", self.name, exc)
            return None
