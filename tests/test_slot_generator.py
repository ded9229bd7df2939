"""
Tests for the slot generator.
"""

import pendulum
import pytest

from availabilityfinder.domain.exceptions import ConfigurationError
from availabilityfinder.domain.models import BusyPeriod
from availabilityfinder.domain.slot_generator import generate_time_slots, wall_clock

DAY = pendulum.date(2024, 1, 1)


def _busy(start: str, end: str, tz: str = "UTC") -> BusyPeriod:
    return BusyPeriod(
        start=pendulum.parse(f"2024-01-01 {start}", tz=tz),
        end=pendulum.parse(f"2024-01-01 {end}", tz=tz),
    )


class TestGenerateTimeSlots:
    """Tests for generate_time_slots."""

    def test_no_busy_periods(self):
        """Test a window with nothing booked."""
        slots = generate_time_slots(DAY, [], start_hour=9, end_hour=11, slot_duration_minutes=30)

        assert len(slots) == 4
        assert all(slot.available for slot in slots)
        assert slots[0].start == pendulum.datetime(2024, 1, 1, 9)
        assert slots[-1].end == pendulum.datetime(2024, 1, 1, 11)

    def test_busy_period_marks_overlapping_slots(self):
        """Test slots overlapping a busy period become unavailable."""
        slots = generate_time_slots(
            DAY,
            [_busy("10:00", "11:00")],
            start_hour=9,
            end_hour=12,
            slot_duration_minutes=30,
        )

        assert len(slots) == 6
        assert [slot.available for slot in slots] == [True, True, False, False, True, True]

    def test_partial_overlap_blocks_both_slots(self):
        """Test a busy period straddling a slot boundary blocks both slots."""
        slots = generate_time_slots(DAY, [_busy("09:15", "09:45")], start_hour=9, end_hour=10)

        assert len(slots) == 2
        assert not slots[0].available
        assert not slots[1].available

    def test_slot_containing_busy_period(self):
        slots = generate_time_slots(
            DAY, [_busy("09:20", "09:40")], start_hour=9, end_hour=10, slot_duration_minutes=60
        )

        assert len(slots) == 1
        assert not slots[0].available

    def test_full_day(self):
        """Test 0-24 yields 48 half-hour slots ending at the next midnight."""
        slots = generate_time_slots(DAY, [], start_hour=0, end_hour=24)

        assert len(slots) == 48
        assert all(slot.available for slot in slots)
        assert slots[0].start.hour == 0
        assert slots[-1].end == pendulum.datetime(2024, 1, 2)

    def test_touching_boundaries_stay_available(self):
        slots = generate_time_slots(DAY, [_busy("09:30", "10:00")], start_hour=9, end_hour=10, slot_duration_minutes=30)

        assert slots[0].available
        assert not slots[1].available

        slots = generate_time_slots(DAY, [_busy("08:00", "09:00"), _busy("10:00", "11:00")], start_hour=9, end_hour=10)

        assert all(slot.available for slot in slots)

    def test_final_slot_may_pass_window_end(self):
        """Test a window that is not a multiple of the slot size."""
        slots = generate_time_slots(DAY, [], start_hour=9, end_hour=10, slot_duration_minutes=45)

        assert len(slots) == 2
        assert slots[1].start == pendulum.datetime(2024, 1, 1, 9, 45)
        assert slots[1].end == pendulum.datetime(2024, 1, 1, 10, 30)
        assert all(slot.duration_minutes() == 45 for slot in slots)

    def test_window_is_wall_clock_in_timezone(self):
        """Test hours refer to the given timezone and busy periods compare as instants."""
        busy_utc = BusyPeriod(
            start=pendulum.parse("2024-01-01T17:00:00Z"),
            end=pendulum.parse("2024-01-01T18:00:00Z"),
        )

        slots = generate_time_slots(
            DAY, [busy_utc], start_hour=9, end_hour=11, slot_duration_minutes=60, timezone="America/Los_Angeles"
        )

        assert slots[0].start.isoformat() == "2024-01-01T09:00:00-08:00"
        assert not slots[0].available  # 09:00 PST == 17:00 UTC
        assert slots[1].available

    def test_dst_day_has_23_hours(self):
        """Test the spring-forward day in New York."""
        slots = generate_time_slots(
            pendulum.date(2024, 3, 10), [], start_hour=0, end_hour=24, slot_duration_minutes=60,
            timezone="America/New_York",
        )

        assert len(slots) == 23

    @pytest.mark.parametrize("duration", [0, -30])
    def test_invalid_duration_raises(self, duration):
        with pytest.raises(ConfigurationError):
            generate_time_slots(DAY, [], start_hour=9, end_hour=17, slot_duration_minutes=duration)

    def test_inverted_window_raises(self):
        with pytest.raises(ConfigurationError):
            generate_time_slots(DAY, [], start_hour=17, end_hour=9)


class TestWallClock:
    """Tests for wall_clock."""

    def test_hour_24_is_next_midnight(self):
        assert wall_clock(DAY, 24, "Europe/Berlin") == pendulum.datetime(2024, 1, 2, tz="Europe/Berlin")

    def test_hour_in_timezone(self):
        assert wall_clock(DAY, 9, "Asia/Jerusalem").isoformat() == "2024-01-01T09:00:00+02:00"
