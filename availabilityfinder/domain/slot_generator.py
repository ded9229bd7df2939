"""
Discretizes a single calendar day into fixed-size slots.

Each slot is tagged available or unavailable against a set of merged busy
periods. Multi-day ranges are handled by the caller, one call per date.
"""

from datetime import date
from typing import List, Sequence

import pendulum
from pendulum import DateTime

from .exceptions import ConfigurationError
from .models import BusyPeriod, TimeSlot


def wall_clock(day: date, hour: int, timezone: str) -> DateTime:
    """
    Return ``hour:00`` on ``day`` in ``timezone``; hour 24 is the next midnight.
    """
    start_of_day = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
    if hour >= 24:
        return start_of_day.add(days=hour // 24).set(hour=hour % 24)
    return start_of_day.set(hour=hour)


def generate_time_slots(
    day: date,
    busy_periods: Sequence[BusyPeriod],
    start_hour: int,
    end_hour: int,
    slot_duration_minutes: int = 30,
    timezone: str = "UTC",
) -> List[TimeSlot]:
    """
    Walk the day window from ``start_hour`` to ``end_hour`` in steps of
    ``slot_duration_minutes``.

    A slot is unavailable if it overlaps any busy period (strict half-open
    overlap). Slots that only touch a busy period's boundary stay available.
    The final slot may extend past the window end when the window is not an
    exact multiple of the slot duration.

    Args:
        day: The calendar date to discretize
        busy_periods: Merged busy periods (any timezone, compared as instants)
        start_hour: First hour of the window (0-23)
        end_hour: Hour the window closes (1-24)
        slot_duration_minutes: Slot size
        timezone: IANA timezone the wall-clock hours refer to

    Returns:
        Slots in chronological order
    """
    if slot_duration_minutes <= 0:
        raise ConfigurationError("slot_duration_minutes must be greater than zero")
    if not 0 <= start_hour < end_hour <= 24:
        raise ConfigurationError(
            f"Invalid hour window {start_hour}-{end_hour}: "
            "expected 0 <= start_hour < end_hour <= 24"
        )

    day_start = wall_clock(day, start_hour, timezone)
    day_end = wall_clock(day, end_hour, timezone)

    slots: List[TimeSlot] = []
    current_start = day_start

    while current_start < day_end:
        current_end = current_start.add(minutes=slot_duration_minutes)
        available = not any(
            busy.overlaps(current_start, current_end) for busy in busy_periods
        )
        slots.append(TimeSlot(start=current_start, end=current_end, available=available))
        current_start = current_end

    return slots
