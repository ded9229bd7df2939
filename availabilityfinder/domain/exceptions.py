"""
Domain-specific exception hierarchy for the availability engine.
"""


class AvailabilityError(Exception):
    """Base class for all application-level errors."""


class ConfigurationError(AvailabilityError, ValueError):
    """Raised for caller-side input problems (bad timezone, bad dates, bad hours)."""


class CalendarAPIError(AvailabilityError):
    """Raised when calendar data cannot be fetched or parsed."""


class ProviderUnavailableError(CalendarAPIError):
    """Raised when a calendar backend cannot be reached or rejects a query."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class AuthenticationError(AvailabilityError):
    """Raised when authentication or token handling fails."""
