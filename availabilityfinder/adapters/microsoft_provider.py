"""
Microsoft Graph availability provider.

Graph has no batched free/busy endpoint usable with delegated per-calendar
selection, so each calendar is read through its /calendarView.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Sequence
from urllib.parse import quote

import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError, ProviderUnavailableError
from ..domain.models import MICROSOFT, BusyPeriod, CalendarCredentials
from .base import AvailabilityProvider, run_blocking, to_utc_string

logger = logging.getLogger(__name__)

_HAS_OFFSET = re.compile(r"(Z|[+-]\d{2}:?\d{2})$")


def normalize_utc_datetime(value: str) -> str:
    """
    Mark a Graph datetime string as UTC.

    With ``Prefer: outlook.timezone="UTC"`` Graph returns wall-clock UTC
    strings without a suffix, e.g. ``2025-11-17T14:00:00.0000000``.
    A ``Z`` is appended unless the string already carries one (or an offset).
    """
    if _HAS_OFFSET.search(value):
        return value
    return f"{value}Z"


def _event_date_time(value: Any) -> str | None:
    """Pull ``dateTime`` out of a Graph dateTimeTimeZone object."""
    if not isinstance(value, dict):
        return None
    date_time = value.get("dateTime")
    return date_time if isinstance(date_time, str) else None


class MicrosoftAvailabilityProvider(AvailabilityProvider):
    """
    Client for Microsoft Graph calendar view queries.
    """

    name = MICROSOFT
    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"
    PAGE_SIZE = 100

    def __init__(self, session: requests.Session | None = None, timeout: float = 30):
        """
        Initialize the provider.

        Args:
            session: Optional requests session (shared connection pool, or a stub in tests)
            timeout: HTTP timeout in seconds
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    async def fetch_busy_periods(
        self,
        credentials: CalendarCredentials,
        calendar_ids: Sequence[str],
        time_min: DateTime,
        time_max: DateTime,
    ) -> List[BusyPeriod]:
        """
        Fetch busy periods calendar by calendar.

        A failing calendar is logged and skipped so it does not abort the
        other calendars of the same connection.
        """
        busy_periods: List[BusyPeriod] = []

        for calendar_id in calendar_ids:
            try:
                busy_periods.extend(
                    await self._fetch_calendar(credentials, calendar_id, time_min, time_max)
                )
            except CalendarAPIError as exc:
                logger.warning("Skipping Microsoft calendar %s: %s", calendar_id, exc)

        return busy_periods

    async def _fetch_calendar(
        self,
        credentials: CalendarCredentials,
        calendar_id: str,
        time_min: DateTime,
        time_max: DateTime,
    ) -> List[BusyPeriod]:
        url = f"{self.GRAPH_API_ENDPOINT}/me/calendars/{quote(calendar_id, safe='')}/calendarView"
        params: Dict[str, Any] | None = {
            "startDateTime": to_utc_string(time_min),
            "endDateTime": to_utc_string(time_max),
            "$select": "showAs,start,end",
            "$top": self.PAGE_SIZE,
        }

        busy_periods: List[BusyPeriod] = []
        pages = 0

        while url:
            data = await run_blocking(self._get_page, credentials.access_token, url, params)
            pages += 1
            events = data.get("value")
            busy_periods.extend(self._parse_events(events if isinstance(events, list) else []))

            # nextLink already embeds the query string
            url = data.get("@odata.nextLink")
            params = None

        logger.debug(
            "Fetched %d busy period(s) from Microsoft calendar %s in %d page(s)",
            len(busy_periods),
            calendar_id,
            pages,
        )
        return busy_periods

    def _get_page(self, access_token: str, url: str, params: Dict[str, Any] | None) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Prefer": 'outlook.timezone="UTC"',
        }
        try:
            response = self.session.get(url, headers=headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise ProviderUnavailableError(
                self.name, f"Failed to fetch calendar view: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise ProviderUnavailableError(
                self.name, f"Unexpected calendar view response of type {type(data).__name__}"
            )
        return data

    def _parse_events(self, events: List[Dict[str, Any]]) -> List[BusyPeriod]:
        """
        Turn calendar view events into busy periods.

        Event format:
        {
            "showAs": "busy",
            "start": {"dateTime": "2025-11-17T14:00:00.0000000", "timeZone": "UTC"},
            "end": {"dateTime": "2025-11-17T15:00:00.0000000", "timeZone": "UTC"}
        }
        """
        busy_periods: List[BusyPeriod] = []

        for event in events:
            if not isinstance(event, dict):
                logger.debug("Dropping Microsoft event that is not an object: %r", event)
                continue

            # Only "free" is ignored; busy, tentative, oof, workingElsewhere all block time
            if str(event.get("showAs") or "").lower() == "free":
                continue

            start = _event_date_time(event.get("start"))
            end = _event_date_time(event.get("end"))
            period = self._busy_period_from(
                normalize_utc_datetime(start) if start else None,
                normalize_utc_datetime(end) if end else None,
            )
            if period is not None:
                busy_periods.append(period)

        return busy_periods
