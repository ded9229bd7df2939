"""
Tests for the Typer command line interface.
"""

import pendulum
import pytest
from typer.testing import CliRunner

from availabilityfinder import __version__
from availabilityfinder.adapters.base import AvailabilityProvider
from availabilityfinder.cli.app import app
from availabilityfinder.domain.exceptions import ProviderUnavailableError
from availabilityfinder.domain.models import BusyPeriod
from availabilityfinder.services import unified_availability

runner = CliRunner()

CONFIG_YAML = """
timezone: UTC
connections:
  - connection_id: work-google
    account_id: alice
    provider: google
    access_token: g-token
    calendars:
      - calendar_id: primary
  - connection_id: work-outlook
    account_id: alice
    provider: microsoft
    access_token: m-token
    calendars:
      - calendar_id: AAMk
"""


class StubProvider(AvailabilityProvider):
    def __init__(self, name, periods=(), error=None):
        self.name = name
        self.periods = list(periods)
        self.error = error

    async def fetch_busy_periods(self, credentials, calendar_ids, time_min, time_max):
        if self.error:
            raise self.error
        return list(self.periods)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return str(path)


@pytest.fixture
def stub_providers(monkeypatch):
    """Replace real providers with stubs; tests fill in the periods."""
    providers = {
        "google": StubProvider(
            "google",
            [BusyPeriod(start=pendulum.datetime(2025, 11, 17, 9), end=pendulum.datetime(2025, 11, 17, 10))],
        ),
        "microsoft": StubProvider(
            "microsoft",
            [BusyPeriod(start=pendulum.datetime(2025, 11, 17, 9, 30), end=pendulum.datetime(2025, 11, 17, 11))],
        ),
    }
    monkeypatch.setattr(unified_availability, "create_provider", lambda name, **kwargs: providers[name])
    return providers


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_connections(config_path):
    result = runner.invoke(app, ["list-connections", "--config", config_path])

    assert result.exit_code == 0
    assert "work-google" in result.output
    assert "work-outlook" in result.output


def test_busy_merges_providers(config_path, stub_providers):
    result = runner.invoke(app, ["busy", "alice", "--config", config_path, "--start", "2025-11-17"])

    assert result.exit_code == 0
    assert "2025-11-17T09:00:00+00:00" in result.output
    assert "2025-11-17T11:00:00+00:00" in result.output
    assert "120" in result.output


def test_busy_reports_partial_results(config_path, stub_providers):
    stub_providers["microsoft"].error = ProviderUnavailableError("microsoft", "503")

    result = runner.invoke(app, ["busy", "alice", "--config", config_path, "--start", "2025-11-17"])

    assert result.exit_code == 0
    assert "Some connections" in result.output
    assert "work-outlook" in result.output
    assert "2025-11-17T10:00:00+00:00" in result.output


def test_busy_without_connections(config_path, stub_providers):
    result = runner.invoke(app, ["busy", "bob", "--config", config_path, "--start", "2025-11-17"])

    assert result.exit_code == 0
    assert "No busy periods" in result.output


def test_slots_shows_suggestions(config_path, stub_providers):
    result = runner.invoke(
        app,
        ["slots", "alice", "--config", config_path, "--start", "2025-11-17", "--duration", "60"],
    )

    assert result.exit_code == 0
    assert "2025-11-17 (UTC)" in result.output
    # 9:00-11:00 is busy, so the first morning suggestion is 11:00
    assert "11:00 AM" in result.output


def test_suggest_lists_times(config_path, stub_providers):
    result = runner.invoke(app, ["suggest", "alice", "--config", config_path, "--days-ahead", "2"])

    assert result.exit_code == 0
    assert "suggestion(s)" in result.output


def test_invalid_timezone_exits_with_error(config_path, stub_providers):
    result = runner.invoke(
        app, ["busy", "alice", "--config", config_path, "--timezone", "Nowhere/Special"]
    )

    assert result.exit_code == 1
    assert "Error" in result.output


def test_missing_config_file(tmp_path):
    result = runner.invoke(app, ["busy", "alice", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_check_free_requested_time(config_path, stub_providers):
    result = runner.invoke(
        app, ["check", "alice", "--config", config_path, "--at", "2025-11-17T14:00", "--duration", "30"]
    )

    assert result.exit_code == 0
    assert "Free at the requested time(s) (UTC)" in result.output
    assert "14:00 - 14:30" in result.output
    assert "conflict" not in result.output


def test_check_conflict_suggests_alternatives(config_path, stub_providers):
    result = runner.invoke(
        app, ["check", "alice", "--config", config_path, "--at", "2025-11-17T09:30", "--duration", "30"]
    )

    assert result.exit_code == 0
    assert "conflict" in result.output
    assert "suggestion(s)" in result.output


def test_check_rejects_unparseable_time(config_path, stub_providers):
    result = runner.invoke(app, ["check", "alice", "--config", config_path, "--at", "whenever"])

    assert result.exit_code == 1
    assert "Error" in result.output
