"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    AuthenticationError,
    AvailabilityError,
    CalendarAPIError,
    ConfigurationError,
    ProviderUnavailableError,
)
from .interval_merger import merge_busy_periods
from .models import (
    AvailabilityRequest,
    AvailabilityResult,
    BusyPeriod,
    CalendarConnection,
    CalendarCredentials,
    CalendarRef,
    MeetingAvailability,
    TimeSlot,
    UnifiedAvailability,
    WorkHours,
)
from .slot_generator import generate_time_slots
from .suggestions import (
    find_suggested_times,
    get_preferred_start_hour,
    get_suggested_time_slots,
    is_time_slot_available,
)

__all__ = [
    "AuthenticationError",
    "AvailabilityError",
    "AvailabilityRequest",
    "AvailabilityResult",
    "BusyPeriod",
    "CalendarAPIError",
    "CalendarConnection",
    "CalendarCredentials",
    "CalendarRef",
    "ConfigurationError",
    "MeetingAvailability",
    "ProviderUnavailableError",
    "TimeSlot",
    "UnifiedAvailability",
    "WorkHours",
    "find_suggested_times",
    "generate_time_slots",
    "get_preferred_start_hour",
    "get_suggested_time_slots",
    "is_time_slot_available",
    "merge_busy_periods",
]
