"""
Tests for the provider registry.
"""

import pytest

from availabilityfinder.adapters import registry
from availabilityfinder.adapters.base import AvailabilityProvider
from availabilityfinder.adapters.google_provider import GoogleAvailabilityProvider
from availabilityfinder.adapters.microsoft_provider import MicrosoftAvailabilityProvider
from availabilityfinder.adapters.registry import create_provider
from availabilityfinder.domain.exceptions import ConfigurationError
from availabilityfinder.domain.models import SUPPORTED_PROVIDERS


@pytest.mark.parametrize("name", SUPPORTED_PROVIDERS)
def test_every_supported_provider_has_a_factory(name):
    provider = create_provider(name)

    assert isinstance(provider, AvailabilityProvider)
    assert provider.name == name


def test_lookup_is_case_insensitive():
    assert isinstance(create_provider("Google"), GoogleAvailabilityProvider)
    assert isinstance(create_provider("MICROSOFT"), MicrosoftAvailabilityProvider)


def test_kwargs_are_forwarded():
    provider = create_provider("google", timeout=5)

    assert provider.timeout == 5


def test_unknown_provider():
    with pytest.raises(ConfigurationError, match="apple"):
        create_provider("apple")


def test_module_is_documented():
    assert registry.__doc__ and "provider" in registry.__doc__
