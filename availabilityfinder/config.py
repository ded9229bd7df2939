"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import (
    SUPPORTED_PROVIDERS,
    CalendarConnection,
    CalendarCredentials,
    CalendarRef,
    WorkHours,
)
from .services.timezones import resolve_timezone


class DefaultsConfig(BaseModel):
    """Default settings for slot generation and suggestions."""
    slot_duration_minutes: int = 30
    start_hour: int = 9
    end_hour: int = 17
    max_suggestions: int = 3

    @field_validator("slot_duration_minutes", "max_suggestions")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts and durations are positive."""
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("start_hour", "end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 24."""
        if not 0 <= v <= 24:
            raise ValueError(f"Hour must be between 0 and 24, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DefaultsConfig":
        """Ensure the configured window opens before it closes."""
        if self.end_hour <= self.start_hour:
            raise ValueError("end_hour must be later than start_hour")
        return self

    def get_work_hours(self) -> WorkHours:
        return WorkHours(start_hour=self.start_hour, end_hour=self.end_hour)


class GoogleOAuthConfig(BaseModel):
    """OAuth client used to refresh Google access tokens."""
    client_id: str = ""
    client_secret: str = ""

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class MicrosoftOAuthConfig(BaseModel):
    """Azure AD application used to refresh Microsoft access tokens."""
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = "common"

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_authority_url(self) -> str:
        """Get the formatted authority URL."""
        return f"https://login.microsoftonline.com/{self.tenant_id}"


class CalendarConfig(BaseModel):
    """A calendar inside a connection."""
    calendar_id: str
    enabled: bool = True
    primary: bool = False
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        return resolve_timezone(value) if value is not None else None


class ConnectionConfig(BaseModel):
    """A calendar connection declared in the config file."""
    connection_id: str
    account_id: str
    provider: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[str] = None  # ISO-8601 instant
    connected: bool = True
    calendars: List[CalendarConfig] = Field(default_factory=list)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        provider = value.lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"provider must be one of {', '.join(SUPPORTED_PROVIDERS)}, got '{value}'"
            )
        return provider

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not isinstance(pendulum.parse(value), pendulum.DateTime):
            raise ValueError(f"expires_at must be an ISO-8601 datetime, got '{value}'")
        return value

    def to_connection(self) -> CalendarConnection:
        return CalendarConnection(
            connection_id=self.connection_id,
            account_id=self.account_id,
            provider=self.provider,
            credentials=CalendarCredentials(
                access_token=self.access_token,
                refresh_token=self.refresh_token,
                expires_at=pendulum.parse(self.expires_at) if self.expires_at else None,
            ),
            is_connected=self.connected,
            calendars=tuple(
                CalendarRef(
                    calendar_id=calendar.calendar_id,
                    is_enabled=calendar.enabled,
                    is_primary=calendar.primary,
                    timezone=calendar.timezone,
                )
                for calendar in self.calendars
            ),
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    provider_timeout_seconds: float = 30.0
    google: GoogleOAuthConfig = Field(default_factory=GoogleOAuthConfig)
    microsoft: MicrosoftOAuthConfig = Field(default_factory=MicrosoftOAuthConfig)
    connections: List[ConnectionConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return resolve_timezone(value)

    @field_validator("provider_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("provider_timeout_seconds must be greater than zero")
        return value

    @field_validator("connections")
    @classmethod
    def validate_connections(cls, value: List[ConnectionConfig]) -> List[ConnectionConfig]:
        """Ensure connection ids are unique."""
        seen: set[str] = set()
        for connection in value:
            if connection.connection_id in seen:
                raise ValueError(f"Duplicate connection id detected: {connection.connection_id}")
            seen.add(connection.connection_id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_connection(self, connection_id: str) -> ConnectionConfig | None:
        """Find a connection by its id."""
        for connection in self.connections:
            if connection.connection_id == connection_id:
                return connection
        return None

    def account_ids(self) -> List[str]:
        """Return configured account ids in declaration order."""
        accounts: List[str] = []
        for connection in self.connections:
            if connection.account_id not in accounts:
                accounts.append(connection.account_id)
        return accounts


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
