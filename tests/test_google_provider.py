"""
Tests for the Google availability provider.
"""

import asyncio

import pendulum
import pytest
import requests

from availabilityfinder.adapters.google_provider import GoogleAvailabilityProvider
from availabilityfinder.domain.exceptions import ProviderUnavailableError
from availabilityfinder.domain.models import CalendarCredentials

CREDENTIALS = CalendarCredentials(access_token="token")
TIME_MIN = pendulum.datetime(2025, 11, 17, tz="America/Los_Angeles")
TIME_MAX = TIME_MIN.end_of("day")


class StubResponse:
    def __init__(self, status_code: int, body):
        self.status_code = status_code
        self._body = body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self._body


class StubSession:
    """Records POST calls and replays a canned response."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _fetch(session, calendar_ids=("cal-1", "cal-2")):
    provider = GoogleAvailabilityProvider(session=session)
    return asyncio.run(
        provider.fetch_busy_periods(
            credentials=CREDENTIALS,
            calendar_ids=list(calendar_ids),
            time_min=TIME_MIN,
            time_max=TIME_MAX,
        )
    )


class TestGoogleAvailabilityProvider:
    """Tests for GoogleAvailabilityProvider."""

    def test_single_batched_query(self):
        """All calendars go into one freeBusy call with UTC bounds."""
        session = StubSession(StubResponse(200, {"calendars": {}}))

        _fetch(session)

        assert len(session.calls) == 1
        call = session.calls[0]
        assert call["url"] == GoogleAvailabilityProvider.FREEBUSY_ENDPOINT
        assert call["headers"]["Authorization"] == "Bearer token"
        assert call["json"]["items"] == [{"id": "cal-1"}, {"id": "cal-2"}]
        assert call["json"]["timeMin"] == "2025-11-17T08:00:00Z"
        assert call["json"]["timeMax"].startswith("2025-11-18T07:59:59")

    def test_flattens_busy_arrays(self):
        session = StubSession(
            StubResponse(
                200,
                {
                    "calendars": {
                        "cal-1": {"busy": [{"start": "2025-11-17T10:00:00Z", "end": "2025-11-17T11:00:00Z"}]},
                        "cal-2": {
                            "busy": [
                                {"start": "2025-11-17T14:00:00+01:00", "end": "2025-11-17T15:00:00+01:00"}
                            ]
                        },
                    }
                },
            )
        )

        periods = _fetch(session)

        assert len(periods) == 2
        assert periods[0].start == pendulum.datetime(2025, 11, 17, 10)
        assert periods[1].start == pendulum.datetime(2025, 11, 17, 13)
        assert periods[1].start.timezone_name == "UTC"

    def test_drops_entries_missing_start_or_end(self):
        session = StubSession(
            StubResponse(
                200,
                {
                    "calendars": {
                        "cal-1": {
                            "busy": [
                                {"start": "2025-11-17T10:00:00Z"},
                                {"end": "2025-11-17T11:00:00Z"},
                                {"start": "not a date", "end": "2025-11-17T11:00:00Z"},
                                {"start": "2025-11-17T12:00:00Z", "end": "2025-11-17T13:00:00Z"},
                            ]
                        }
                    }
                },
            )
        )

        periods = _fetch(session)

        assert len(periods) == 1
        assert periods[0].start.hour == 12

    def test_calendar_errors_do_not_fail_call(self):
        session = StubSession(
            StubResponse(
                200,
                {
                    "calendars": {
                        "cal-1": {"errors": [{"domain": "global", "reason": "notFound"}], "busy": []},
                        "cal-2": {"busy": [{"start": "2025-11-17T10:00:00Z", "end": "2025-11-17T11:00:00Z"}]},
                    }
                },
            )
        )

        assert len(_fetch(session)) == 1

    def test_http_error_raises_provider_unavailable(self):
        session = StubSession(StubResponse(503, {}))

        with pytest.raises(ProviderUnavailableError) as exc_info:
            _fetch(session)

        assert exc_info.value.provider == "google"

    def test_transport_error_raises_provider_unavailable(self):
        session = StubSession(error=requests.ConnectionError("boom"))

        with pytest.raises(ProviderUnavailableError):
            _fetch(session)

    def test_no_calendars_skips_request(self):
        session = StubSession(StubResponse(200, {"calendars": {}}))

        assert _fetch(session, calendar_ids=()) == []
        assert session.calls == []

    def test_non_object_response_raises_provider_unavailable(self):
        session = StubSession(StubResponse(200, ["unexpected"]))

        with pytest.raises(ProviderUnavailableError):
            _fetch(session)

    def test_malformed_busy_entries_are_skipped(self):
        session = StubSession(
            StubResponse(
                200,
                {
                    "calendars": {
                        "cal-1": "not-a-calendar",
                        "cal-2": {
                            "busy": [
                                "not-an-entry",
                                {"start": 5, "end": 6},
                                {"start": "2025-11-17T10:00:00Z", "end": "2025-11-17T11:00:00Z"},
                            ]
                        },
                    }
                },
            )
        )

        periods = _fetch(session)

        assert [period.start.hour for period in periods] == [10]
