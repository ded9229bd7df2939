"""
Adapters layer - External integrations (Google Calendar, Microsoft Graph).
"""

from .base import AvailabilityProvider
from .connection_store import ConnectionStore, StaticConnectionStore
from .google_provider import GoogleAvailabilityProvider
from .microsoft_provider import MicrosoftAvailabilityProvider, normalize_utc_datetime
from .registry import create_provider
from .token_refresh import (
    GoogleTokenRefresher,
    MicrosoftTokenRefresher,
    ProviderTokenRefresher,
    TokenRefresher,
)

__all__ = [
    "AvailabilityProvider",
    "ConnectionStore",
    "GoogleAvailabilityProvider",
    "GoogleTokenRefresher",
    "MicrosoftAvailabilityProvider",
    "MicrosoftTokenRefresher",
    "ProviderTokenRefresher",
    "StaticConnectionStore",
    "TokenRefresher",
    "create_provider",
    "normalize_utc_datetime",
]
