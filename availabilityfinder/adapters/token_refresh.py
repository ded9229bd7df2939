"""
Access token refresh, supplied to the aggregator as an explicit capability.

Refreshers return new credentials and report them through an optional
``on_refresh`` callback; writing them back to storage is the caller's job.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

import msal
import pendulum
import requests

from ..domain.exceptions import AuthenticationError
from ..domain.models import CalendarConnection, CalendarCredentials
from .base import run_blocking

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[CalendarConnection, CalendarCredentials], None]


class TokenRefresher(Protocol):
    """Protocol describing the refresh capability needed by the aggregator."""

    async def __call__(self, connection: CalendarConnection) -> CalendarCredentials:
        """Return usable credentials for the connection."""


def _credentials_from_token_response(
    result: Mapping[str, Any],
    previous: CalendarCredentials,
) -> CalendarCredentials:
    expires_in = result.get("expires_in")
    return CalendarCredentials(
        access_token=result["access_token"],
        refresh_token=result.get("refresh_token") or previous.refresh_token,
        expires_at=pendulum.now("UTC").add(seconds=int(expires_in)) if expires_in else None,
    )


class GoogleTokenRefresher:
    """
    Exchanges a Google refresh token for a new access token.
    """

    TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        session: requests.Session | None = None,
        on_refresh: Optional[RefreshCallback] = None,
        timeout: float = 10,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or requests.Session()
        self.on_refresh = on_refresh
        self.timeout = timeout

    async def __call__(self, connection: CalendarConnection) -> CalendarCredentials:
        credentials = await run_blocking(self._refresh, connection.credentials)
        if self.on_refresh:
            self.on_refresh(connection, credentials)
        return credentials

    def _refresh(self, credentials: CalendarCredentials) -> CalendarCredentials:
        if not credentials.refresh_token:
            raise AuthenticationError("Google connection has no refresh token")

        try:
            response = self.session.post(
                self.TOKEN_ENDPOINT,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": credentials.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise AuthenticationError(f"Google token refresh failed: {exc}") from exc

        if "access_token" not in result:
            raise AuthenticationError("Google token response missing access_token")

        return _credentials_from_token_response(result, credentials)


class MicrosoftTokenRefresher:
    """
    Redeems a Microsoft refresh token through MSAL.
    """

    # Required scopes for calendar access
    SCOPES = ["Calendars.Read"]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        tenant_id: str = "common",
        authority_url: str | None = None,
        app: Any = None,
        on_refresh: Optional[RefreshCallback] = None,
    ):
        """
        Initialize the refresher.

        Args:
            client_id: Azure AD application (client) ID
            client_secret: Azure AD client secret
            tenant_id: Azure AD tenant ID
            authority_url: Optional custom authority URL
            app: Optional pre-built MSAL application
            on_refresh: Called with the refreshed credentials
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority = authority_url or f"https://login.microsoftonline.com/{tenant_id}"
        self.on_refresh = on_refresh
        self._app = app

    @property
    def app(self) -> Any:
        # MSAL resolves the authority over the network, so build it on first use
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self.client_id,
                authority=self.authority,
                client_credential=self.client_secret,
            )
        return self._app

    async def __call__(self, connection: CalendarConnection) -> CalendarCredentials:
        credentials = await run_blocking(self._refresh, connection.credentials)
        if self.on_refresh:
            self.on_refresh(connection, credentials)
        return credentials

    def _refresh(self, credentials: CalendarCredentials) -> CalendarCredentials:
        if not credentials.refresh_token:
            raise AuthenticationError("Microsoft connection has no refresh token")

        try:
            result = self.app.acquire_token_by_refresh_token(
                credentials.refresh_token,
                scopes=self.SCOPES,
            )
        except Exception as exc:
            raise AuthenticationError(f"Microsoft token refresh failed: {exc}") from exc

        if "access_token" not in result:
            error = result.get("error_description", "Unknown error")
            raise AuthenticationError(f"Microsoft token refresh failed: {error}")

        return _credentials_from_token_response(result, credentials)


class ProviderTokenRefresher:
    """
    Routes a refresh to the refresher registered for the connection's provider.
    """

    def __init__(self, refreshers: Dict[str, TokenRefresher]):
        self._refreshers = dict(refreshers)

    @property
    def providers(self) -> List[str]:
        return sorted(self._refreshers)

    async def __call__(self, connection: CalendarConnection) -> CalendarCredentials:
        refresher = self._refreshers.get(connection.provider)
        if refresher is None:
            raise AuthenticationError(
                f"No token refresher configured for provider '{connection.provider}'"
            )
        logger.info("Refreshing %s token for connection %s", connection.provider, connection.connection_id)
        return await refresher(connection)
