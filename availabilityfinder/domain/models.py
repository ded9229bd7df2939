"""
Domain models for calendar connections, busy periods and time slots.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import ConfigurationError

GOOGLE = "google"
MICROSOFT = "microsoft"
SUPPORTED_PROVIDERS = (GOOGLE, MICROSOFT)


@dataclass(frozen=True)
class CalendarRef:
    """A single calendar inside a provider connection."""
    calendar_id: str
    is_enabled: bool = True
    is_primary: bool = False
    timezone: str | None = None


@dataclass(frozen=True)
class CalendarCredentials:
    """
    Connection-level OAuth credentials.

    The engine only reads these; acquiring and storing them happens elsewhere.
    """
    access_token: str
    refresh_token: str | None = None
    expires_at: DateTime | None = None

    def is_expired(self, now: DateTime | None = None, leeway_seconds: int = 60) -> bool:
        """Return True if the access token is expired or about to expire."""
        if self.expires_at is None:
            return False
        now = now or pendulum.now("UTC")
        return self.expires_at <= now.add(seconds=leeway_seconds)


@dataclass(frozen=True)
class CalendarConnection:
    """
    One connected (account, provider) pair and its calendars.
    """
    connection_id: str
    account_id: str
    provider: str
    credentials: CalendarCredentials
    is_connected: bool = True
    calendars: Tuple[CalendarRef, ...] = ()

    def enabled_calendar_ids(self) -> List[str]:
        """Return the ids of enabled calendars, preserving their order."""
        return [ref.calendar_id for ref in self.calendars if ref.is_enabled]

    def with_credentials(self, credentials: CalendarCredentials) -> "CalendarConnection":
        """Return a copy of this connection carrying fresh credentials."""
        return CalendarConnection(
            connection_id=self.connection_id,
            account_id=self.account_id,
            provider=self.provider,
            credentials=credentials,
            is_connected=self.is_connected,
            calendars=self.calendars,
        )


@dataclass(frozen=True)
class BusyPeriod:
    """
    Represents an immutable busy interval reported by a calendar.

    Invariant: start <= end. Periods violating it are considered malformed
    and are dropped before merging.
    """
    start: DateTime
    end: DateTime

    def is_malformed(self) -> bool:
        return self.end < self.start

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        """Half-open overlap test; touching boundaries do not overlap."""
        return start < self.end and end > self.start

    def in_timezone(self, timezone: str) -> "BusyPeriod":
        """Render the same instants in another timezone."""
        return BusyPeriod(
            start=self.start.in_timezone(timezone),
            end=self.end.in_timezone(timezone),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm Z')} - {self.end.format('YYYY-MM-DD HH:mm Z')}"


@dataclass(frozen=True)
class TimeSlot:
    """
    A fixed-size half-open slot [start, end) tagged available or not.
    """
    start: DateTime
    end: DateTime
    available: bool

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "available": self.available,
        }

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm
        """
        return (
            f"{self.start.format('dddd, YYYY-MM-DD')} | "
            f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        )


@dataclass(frozen=True)
class WorkHours:
    """Daily window, in whole hours, used when discretizing a day into slots."""
    start_hour: int = 9
    end_hour: int = 17

    def __post_init__(self):
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ConfigurationError(
                f"Invalid work hours {self.start_hour}-{self.end_hour}: "
                "expected 0 <= start_hour < end_hour <= 24"
            )


@dataclass
class AvailabilityRequest:
    """Input to the aggregator."""
    account_id: str
    start_date: Any  # "YYYY-MM-DD", ISO datetime string, date or datetime
    end_date: Any
    timezone: str = "UTC"
    slot_duration_minutes: int = 30
    work_hours: WorkHours = field(default_factory=WorkHours)


@dataclass
class AvailabilityResult:
    """
    Availability for one calendar day. Recomputed per request, never persisted.
    """
    date: date
    busy_periods: List[BusyPeriod]
    time_slots: List[TimeSlot]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "busyPeriods": [period.to_dict() for period in self.busy_periods],
            "timeSlots": [slot.to_dict() for slot in self.time_slots],
        }


@dataclass
class UnifiedAvailability:
    """
    Merged busy periods across all connections, plus the connections that
    could not contribute (their busy time is unknown, not absent).
    """
    busy_periods: List[BusyPeriod]
    failed_connections: List[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_connections)


@dataclass
class MeetingAvailability:
    """
    Outcome of checking requested meeting times against the busy list.

    ``requested_times`` holds only the requested slots that are free;
    ``suggested_times`` is filled when at least one request conflicts, or
    when nothing was requested.
    """
    requested_times: List[TimeSlot]
    suggested_times: List[TimeSlot]
    timezone: str
    has_conflicts: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requestedTimes": [slot.to_dict() for slot in self.requested_times],
            "suggestedTimes": [slot.to_dict() for slot in self.suggested_times],
            "timezone": self.timezone,
            "hasConflicts": self.has_conflicts,
        }
