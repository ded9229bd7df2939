"""
Unified availability across all of an account's calendar connections.

The service loads connections from a connection store, fans out to one
provider adapter per connection, merges what comes back and renders it in
the caller's timezone. Provider outages degrade to "no known busy time
from that source" instead of failing the request; only caller input
problems (bad timezone, bad dates) are raised.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pendulum
from pendulum import DateTime

from ..adapters.base import AvailabilityProvider
from ..adapters.connection_store import ConnectionStore
from ..adapters.registry import create_provider
from ..adapters.token_refresh import TokenRefresher
from ..domain.exceptions import ConfigurationError
from ..domain.interval_merger import merge_busy_periods
from ..domain.models import (
    AvailabilityRequest,
    AvailabilityResult,
    BusyPeriod,
    CalendarConnection,
    MeetingAvailability,
    TimeSlot,
    UnifiedAvailability,
    WorkHours,
)
from ..domain.slot_generator import generate_time_slots, wall_clock
from ..domain.suggestions import (
    DEFAULT_START_HOUR,
    find_suggested_times,
    get_preferred_start_hour,
    is_time_slot_available,
    upcoming_days,
)
from .fanout import gather_best_effort
from .timezones import convert_periods, dates_in_range, day_bounds, resolve_timezone, to_calendar_date

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Orchestrates busy-time retrieval across providers and slot generation.

    Providers, the connection store and the token refresher are injected,
    which makes it easy to plug in fakes in tests.
    """

    def __init__(
        self,
        connection_store: ConnectionStore,
        providers: Optional[Mapping[str, AvailabilityProvider]] = None,
        token_refresher: Optional[TokenRefresher] = None,
        provider_timeout_seconds: float | None = 30.0,
        default_timezone: str = "UTC",
    ) -> None:
        self._connection_store = connection_store
        self._providers: Dict[str, AvailabilityProvider] = dict(providers or {})
        self._token_refresher = token_refresher
        self._provider_timeout = provider_timeout_seconds
        self._default_timezone = resolve_timezone(default_timezone)

    def _provider_for(self, name: str) -> AvailabilityProvider:
        if name not in self._providers:
            self._providers[name] = create_provider(name)
        return self._providers[name]

    async def get_unified_availability(
        self,
        *,
        account_id: str,
        start_date: Any,
        end_date: Any,
        timezone: str,
    ) -> List[BusyPeriod]:
        """
        Return merged busy periods for all enabled calendars, rendered in ``timezone``.
        """
        unified = await self.collect_unified_availability(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            timezone=timezone,
        )
        return unified.busy_periods

    async def collect_unified_availability(
        self,
        *,
        account_id: str,
        start_date: Any,
        end_date: Any,
        timezone: str,
    ) -> UnifiedAvailability:
        """
        Like ``get_unified_availability`` but also reports which connections failed.

        Raises:
            ConfigurationError: For an invalid timezone or malformed dates
        """
        timezone = resolve_timezone(timezone)
        time_min, time_max = day_bounds(start_date, end_date, timezone)

        connections = await self._connection_store.get_connections(account_id)

        tasks = {}
        for index, connection in enumerate(connections):
            if not connection.is_connected:
                continue
            calendar_ids = connection.enabled_calendar_ids()
            if not calendar_ids:
                logger.debug("Connection %s has no enabled calendars", connection.connection_id)
                continue

            key = connection.connection_id
            if key in tasks:
                # Task keys label failures and must be unique
                key = f"{connection.connection_id}#{index}"
                logger.warning(
                    "Duplicate connection id %s for account %s; tracking it as %s",
                    connection.connection_id,
                    account_id,
                    key,
                )
            tasks[key] = self._fetch_connection(connection, calendar_ids, time_min, time_max)

        if not tasks:
            logger.info("No enabled calendars for account %s", account_id)
            return UnifiedAvailability(busy_periods=[])

        outcome = await gather_best_effort(tasks, timeout=self._provider_timeout)

        for failure in outcome.failures:
            logger.warning(
                "Calendar connection %s unavailable, assuming no busy time from it: %s",
                failure.key,
                failure.error,
            )

        all_periods = [
            period for periods in outcome.successes.values() for period in periods
        ]
        merged = merge_busy_periods(all_periods)

        logger.info(
            "Merged %d busy period(s) into %d for account %s (%d/%d connections ok)",
            len(all_periods),
            len(merged),
            account_id,
            len(outcome.successes),
            len(tasks),
        )

        return UnifiedAvailability(
            busy_periods=convert_periods(merged, timezone),
            failed_connections=outcome.failed_keys,
        )

    async def get_availability(self, request: AvailabilityRequest) -> List[AvailabilityResult]:
        """
        Compose unified busy periods with slot generation, one result per date.
        """
        timezone = resolve_timezone(request.timezone)
        busy_periods = await self.get_unified_availability(
            account_id=request.account_id,
            start_date=request.start_date,
            end_date=request.end_date,
            timezone=timezone,
        )

        results: List[AvailabilityResult] = []
        for day in dates_in_range(request.start_date, request.end_date):
            day_start = wall_clock(day, 0, timezone)
            day_end = wall_clock(day, 24, timezone)
            results.append(
                AvailabilityResult(
                    date=day,
                    busy_periods=[p for p in busy_periods if p.overlaps(day_start, day_end)],
                    time_slots=generate_time_slots(
                        day,
                        busy_periods,
                        start_hour=request.work_hours.start_hour,
                        end_hour=request.work_hours.end_hour,
                        slot_duration_minutes=request.slot_duration_minutes,
                        timezone=timezone,
                    ),
                )
            )

        return results

    async def get_connection_availability(
        self,
        *,
        connection: CalendarConnection,
        start_date: Any,
        end_date: Any,
        work_hours: WorkHours | None = None,
        slot_duration_minutes: int = 30,
    ) -> AvailabilityResult:
        """
        UTC availability for a single connection and the start date.

        Unlike the unified path there is nothing to degrade to here, so
        provider errors propagate to the caller.
        """
        work_hours = work_hours or WorkHours()
        time_min, time_max = day_bounds(start_date, end_date, "UTC")

        busy_periods = merge_busy_periods(
            await self._fetch_connection(
                connection, connection.enabled_calendar_ids(), time_min, time_max
            )
        )
        day = to_calendar_date(start_date)

        return AvailabilityResult(
            date=day,
            busy_periods=busy_periods,
            time_slots=generate_time_slots(
                day,
                busy_periods,
                start_hour=work_hours.start_hour,
                end_hour=work_hours.end_hour,
                slot_duration_minutes=slot_duration_minutes,
                timezone="UTC",
            ),
        )

    async def resolve_account_timezone(self, account_id: str) -> str:
        """
        Timezone of the account's primary calendar, else of the first enabled
        calendar that declares one, else the service default.
        """
        connections = await self._connection_store.get_connections(account_id)
        calendars = [
            ref
            for connection in connections if connection.is_connected
            for ref in connection.calendars if ref.is_enabled and ref.timezone
        ]

        for ref in sorted(calendars, key=lambda ref: not ref.is_primary):
            try:
                return resolve_timezone(ref.timezone)
            except ConfigurationError:
                logger.warning("Ignoring invalid timezone %r on calendar %s", ref.timezone, ref.calendar_id)

        return self._default_timezone

    async def suggest_meeting_times(
        self,
        *,
        account_id: str,
        timezone: str,
        duration_minutes: int,
        preferred_start_hour: int = DEFAULT_START_HOUR,
        days_ahead: int = 7,
        work_hours: WorkHours | None = None,
        max_suggestions: int = 5,
    ) -> List[TimeSlot]:
        """
        Free meeting times over the ``days_ahead`` days after today.
        """
        timezone = resolve_timezone(timezone)
        days = upcoming_days(timezone, days_ahead)
        if not days:
            return []

        busy_periods = await self.get_unified_availability(
            account_id=account_id,
            start_date=days[0],
            end_date=days[-1],
            timezone=timezone,
        )
        return find_suggested_times(
            busy_periods,
            days,
            timezone=timezone,
            duration_minutes=duration_minutes,
            preferred_start_hour=preferred_start_hour,
            work_hours=work_hours,
            max_suggestions=max_suggestions,
        )

    async def find_meeting_availability(
        self,
        *,
        account_id: str,
        requested_starts: Sequence[datetime],
        duration_minutes: int,
        timezone: str | None = None,
        days_ahead: int = 7,
        work_hours: WorkHours | None = None,
        max_suggestions: int = 5,
    ) -> MeetingAvailability:
        """
        Check requested meeting times against the account's busy time.

        Requested times that are free are returned as-is. If any of them
        conflicts, alternatives are suggested around their average start
        hour. With no requested times, suggestions for the coming days are
        returned instead.

        Args:
            account_id: Account whose calendars are checked
            requested_starts: Proposed start times; naive values are read in ``timezone``
            duration_minutes: Meeting length
            timezone: IANA timezone; defaults to the account's calendar timezone
            days_ahead: How far ahead alternatives are searched
            work_hours: Allowed window for suggested start hours
            max_suggestions: Maximum number of alternatives

        Raises:
            ConfigurationError: For an invalid timezone or duration
        """
        if duration_minutes <= 0:
            raise ConfigurationError("duration_minutes must be greater than zero")

        if timezone:
            timezone = resolve_timezone(timezone)
        else:
            timezone = await self.resolve_account_timezone(account_id)

        requested = []
        for value in requested_starts:
            start = pendulum.instance(value, tz=timezone).in_timezone(timezone)
            requested.append(TimeSlot(start=start, end=start.add(minutes=duration_minutes), available=True))

        suggestion_kwargs = dict(
            account_id=account_id,
            timezone=timezone,
            duration_minutes=duration_minutes,
            days_ahead=days_ahead,
            work_hours=work_hours,
            max_suggestions=max_suggestions,
        )

        if not requested:
            return MeetingAvailability(
                requested_times=[],
                suggested_times=await self.suggest_meeting_times(**suggestion_kwargs),
                timezone=timezone,
                has_conflicts=False,
            )

        busy_periods = await self.get_unified_availability(
            account_id=account_id,
            start_date=min(slot.start for slot in requested).date(),
            end_date=max(slot.end for slot in requested).date(),
            timezone=timezone,
        )

        available = [
            slot for slot in requested
            if is_time_slot_available(slot.start, slot.end, busy_periods)
        ]
        has_conflicts = len(available) < len(requested)

        suggested: List[TimeSlot] = []
        if has_conflicts:
            suggested = await self.suggest_meeting_times(
                preferred_start_hour=get_preferred_start_hour(
                    [slot.start for slot in requested], timezone
                ),
                **suggestion_kwargs,
            )

        logger.info(
            "Meeting availability for %s: %d/%d requested time(s) free, %d suggestion(s)",
            account_id,
            len(available),
            len(requested),
            len(suggested),
        )

        return MeetingAvailability(
            requested_times=available,
            suggested_times=suggested,
            timezone=timezone,
            has_conflicts=has_conflicts,
        )

    async def _fetch_connection(
        self,
        connection: CalendarConnection,
        calendar_ids: List[str],
        time_min: DateTime,
        time_max: DateTime,
    ) -> List[BusyPeriod]:
        provider = self._provider_for(connection.provider)

        credentials = connection.credentials
        if self._token_refresher is not None and credentials.is_expired():
            credentials = await self._token_refresher(connection)

        periods = await provider.fetch_busy_periods(
            credentials=credentials,
            calendar_ids=calendar_ids,
            time_min=time_min,
            time_max=time_max,
        )
        logger.debug(
            "Connection %s (%s) returned %d busy period(s)",
            connection.connection_id,
            connection.provider,
            len(periods),
        )
        return periods
