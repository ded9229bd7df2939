"""
Provider registry: maps a connection's provider tag to its adapter class.
"""

from typing import Any, Callable, Dict

from ..domain.exceptions import ConfigurationError
from ..domain.models import GOOGLE, MICROSOFT
from .base import AvailabilityProvider
from .google_provider import GoogleAvailabilityProvider
from .microsoft_provider import MicrosoftAvailabilityProvider

_PROVIDERS: Dict[str, Callable[..., AvailabilityProvider]] = {
    GOOGLE: GoogleAvailabilityProvider,
    MICROSOFT: MicrosoftAvailabilityProvider,
}


def create_provider(name: str, **kwargs: Any) -> AvailabilityProvider:
    provider_class = _PROVIDERS.get(name.lower())
    if not provider_class:
        raise ConfigurationError(f"Unknown calendar provider: {name}")
    return provider_class(**kwargs)
