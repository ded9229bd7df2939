"""
Consumer-facing helpers that turn availability into meeting suggestions.

These never decide which slot gets booked; they only order and format
candidates for a downstream consumer.
"""

import math
from datetime import date
from typing import List, Sequence

import pendulum
from pendulum import DateTime

from .models import BusyPeriod, TimeSlot, WorkHours
from .slot_generator import wall_clock

NOON = 12
DEFAULT_START_HOUR = 9


def is_time_slot_available(
    start: DateTime,
    end: DateTime,
    busy_periods: Sequence[BusyPeriod],
) -> bool:
    """Return True if [start, end) does not overlap any busy period."""
    return not any(busy.overlaps(start, end) for busy in busy_periods)


def format_slot_time(slot: TimeSlot) -> str:
    """Format a slot start as a 12-hour clock label, e.g. ``9:00 AM``."""
    return slot.start.format("h:mm A")


def get_suggested_time_slots(
    slots: Sequence[TimeSlot],
    max_suggestions: int = 3,
) -> List[str]:
    """
    Pick available slots, morning before afternoon, and format them.

    Within each half of the day the input order is kept.
    """
    available = [slot for slot in slots if slot.available]
    morning = [slot for slot in available if slot.start.hour < NOON]
    afternoon = [slot for slot in available if slot.start.hour >= NOON]

    return [format_slot_time(slot) for slot in (morning + afternoon)[:max_suggestions]]


def find_suggested_times(
    busy_periods: Sequence[BusyPeriod],
    days: Sequence[date],
    timezone: str,
    duration_minutes: int,
    preferred_start_hour: int = DEFAULT_START_HOUR,
    work_hours: WorkHours | None = None,
    max_suggestions: int = 5,
) -> List[TimeSlot]:
    """
    Suggest free meeting times close to a preferred hour.

    For each day, candidate start hours are tried in order: the preferred
    hour, one hour later, one hour earlier, then 10:00, 14:00 and 15:00.
    Candidates outside the work hours are skipped.

    Args:
        busy_periods: Merged busy periods covering ``days``
        days: Calendar dates to search, in order
        timezone: IANA timezone the candidate hours refer to
        duration_minutes: Meeting length
        preferred_start_hour: Hour to try first
        work_hours: Allowed window for candidate start hours
        max_suggestions: Stop after this many suggestions

    Returns:
        Available TimeSlot objects without duplicates
    """
    work_hours = work_hours or WorkHours()
    candidate_hours = [
        preferred_start_hour,
        preferred_start_hour + 1,
        preferred_start_hour - 1,
        10,
        14,
        15,
    ]
    hours_to_try = [
        hour for hour in candidate_hours
        if work_hours.start_hour <= hour < work_hours.end_hour
    ]

    suggestions: List[TimeSlot] = []
    seen: set[DateTime] = set()

    for day in days:
        for hour in hours_to_try:
            if len(suggestions) >= max_suggestions:
                return suggestions

            start = wall_clock(day, hour, timezone)
            end = start.add(minutes=duration_minutes)
            if start in seen or not is_time_slot_available(start, end, busy_periods):
                continue

            seen.add(start)
            suggestions.append(TimeSlot(start=start, end=end, available=True))

    return suggestions


def upcoming_days(timezone: str, days_ahead: int, include_today: bool = False) -> List[date]:
    """Return the next ``days_ahead`` calendar dates in ``timezone``."""
    today = pendulum.today(timezone)
    offset = 0 if include_today else 1
    return [today.add(days=offset + i).date() for i in range(days_ahead)]


def get_preferred_start_hour(starts: Sequence[DateTime], timezone: str) -> int:
    """
    Average local start hour of the requested times, rounded half up.

    Falls back to 9:00 when nothing was requested.
    """
    if not starts:
        return DEFAULT_START_HOUR
    hours = [start.in_timezone(timezone).hour for start in starts]
    return math.floor(sum(hours) / len(hours) + 0.5)
