"""
Connection store: where the aggregator reads calendar connections from.

Persistence of connections lives outside this package; the static store
serves connections declared in the configuration file.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol

from ..domain.models import CalendarConnection


class ConnectionStore(Protocol):
    """Protocol describing the connection lookup needed by the aggregator."""

    async def get_connections(self, account_id: str) -> List[CalendarConnection]:
        """Return connected calendar connections for the account."""


class StaticConnectionStore:
    """
    In-memory store over a fixed set of connections.
    """

    def __init__(self, connections: Iterable[CalendarConnection] = ()):
        self._connections = list(connections)

    @classmethod
    def from_config(cls, config) -> "StaticConnectionStore":
        """Build the store from an AppConfig's ``connections`` section."""
        return cls(entry.to_connection() for entry in config.connections)

    async def get_connections(self, account_id: str) -> List[CalendarConnection]:
        return [
            connection for connection in self._connections
            if connection.account_id == account_id and connection.is_connected
        ]

    def all_connections(self) -> List[CalendarConnection]:
        return list(self._connections)
