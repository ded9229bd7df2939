"""
Google Calendar availability provider.

Uses the /freeBusy endpoint, which answers for many calendars in one call.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import requests
from pendulum import DateTime

from ..domain.exceptions import ProviderUnavailableError
from ..domain.models import GOOGLE, BusyPeriod, CalendarCredentials
from .base import AvailabilityProvider, run_blocking, to_utc_string

logger = logging.getLogger(__name__)


class GoogleAvailabilityProvider(AvailabilityProvider):
    """
    Client for Google Calendar free/busy queries.
    """

    name = GOOGLE
    FREEBUSY_ENDPOINT = "https://www.googleapis.com/calendar/v3/freeBusy"

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
        Query all calendars in a single batched free/busy call.

        Raises:
            ProviderUnavailableError: If the API call fails as a whole
        """
        if not calendar_ids:
            return []

        payload = {
            "timeMin": to_utc_string(time_min),
            "timeMax": to_utc_string(time_max),
            "items": [{"id": calendar_id} for calendar_id in calendar_ids],
        }
        data = await run_blocking(self._query_freebusy, credentials.access_token, payload)
        return self._parse_freebusy_response(data)

    def _query_freebusy(self, access_token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(
                self.FREEBUSY_ENDPOINT,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise ProviderUnavailableError(
                self.name, f"Failed to query free/busy: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise ProviderUnavailableError(
                self.name, f"Unexpected free/busy response of type {type(data).__name__}"
            )
        return data

    def _parse_freebusy_response(self, response_data: Dict[str, Any]) -> List[BusyPeriod]:
        """
        Flatten the per-calendar busy arrays.

        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [{"start": "2025-11-17T10:00:00Z", "end": "..."}],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }
        """
        busy_periods: List[BusyPeriod] = []

        calendars = response_data.get("calendars")
        for calendar_id, calendar in (calendars if isinstance(calendars, dict) else {}).items():
            if not isinstance(calendar, dict):
                continue
            errors = calendar.get("errors")
            if errors:
                logger.warning("Google free/busy reported errors for calendar %s: %s", calendar_id, errors)

            for item in calendar.get("busy") or []:
                if not isinstance(item, dict):
                    continue
                period = self._busy_period_from(item.get("start"), item.get("end"))
                if period is not None:
                    busy_periods.append(period)

        return busy_periods
