"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.connection_store import StaticConnectionStore
from ..adapters.token_refresh import GoogleTokenRefresher, MicrosoftTokenRefresher, ProviderTokenRefresher
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import AvailabilityError
from ..domain.models import GOOGLE, MICROSOFT, AvailabilityRequest, WorkHours
from ..domain.suggestions import get_suggested_time_slots
from ..services.unified_availability import AvailabilityService

app = typer.Typer(
    name="availabilityfinder",
    help="Aggregate free/busy data across Google and Microsoft calendars",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
StartOption = Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD). Defaults to today.")]
EndOption = Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD). Defaults to the start date.")]
TimezoneOption = Annotated[Optional[str], typer.Option("--timezone", "-t", help="IANA timezone. Defaults to the configured one.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_service(config: AppConfig) -> AvailabilityService:
    """Wire the connection store, token refreshers and timeout from config."""
    refreshers = {}
    if config.google.is_configured():
        refreshers[GOOGLE] = GoogleTokenRefresher(
            client_id=config.google.client_id,
            client_secret=config.google.client_secret,
        )
    if config.microsoft.is_configured():
        refreshers[MICROSOFT] = MicrosoftTokenRefresher(
            client_id=config.microsoft.client_id,
            client_secret=config.microsoft.client_secret,
            authority_url=config.microsoft.get_authority_url(),
        )

    return AvailabilityService(
        connection_store=StaticConnectionStore.from_config(config),
        token_refresher=ProviderTokenRefresher(refreshers) if refreshers else None,
        provider_timeout_seconds=config.provider_timeout_seconds,
        default_timezone=config.timezone,
    )


def _resolve_range(config: AppConfig, start: Optional[str], end: Optional[str], timezone: Optional[str]):
    tz = timezone or config.timezone
    start_date = start or pendulum.today(tz).to_date_string()
    end_date = end or start_date
    return start_date, end_date, tz


def _print_suggestions(suggestions) -> None:
    if not suggestions:
        console.print(
            "[yellow]⚠ No free meeting times found.[/yellow]\n"
            "Try more days or a shorter duration."
        )
        return

    console.print(f"[bold green]✓ {len(suggestions)} suggestion(s):[/bold green]\n")
    for slot in suggestions:
        console.print(f"  {slot.format_display()}")
    console.print()


@app.command()
def busy(
    account: Annotated[str, typer.Argument(help="Account id whose calendars are aggregated")],
    config_file: ConfigOption = None,
    start: StartOption = None,
    end: EndOption = None,
    timezone: TimezoneOption = None,
    verbose: VerboseOption = False,
):
    """
    Show merged busy periods across all enabled calendars.
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        start_date, end_date, tz = _resolve_range(config, start, end, timezone)
        service = _build_service(config)

        unified = asyncio.run(
            service.collect_unified_availability(
                account_id=account,
                start_date=start_date,
                end_date=end_date,
                timezone=tz,
            )
        )
    except (AvailabilityError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if unified.is_partial:
        console.print(
            "[yellow]⚠ Some connections could not be reached; their busy time is missing: "
            f"{', '.join(unified.failed_connections)}[/yellow]"
        )

    if not unified.busy_periods:
        console.print(f"[green]No busy periods between {start_date} and {end_date} ({tz}).[/green]")
        return

    table = Table(title=f"Busy periods ({tz})", show_header=True, header_style="bold cyan")
    table.add_column("Start", style="bold yellow")
    table.add_column("End")
    table.add_column("Minutes", justify="right", style="dim")
    for period in unified.busy_periods:
        table.add_row(period.start.isoformat(), period.end.isoformat(), str(period.duration_minutes()))

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    account: Annotated[str, typer.Argument(help="Account id whose calendars are aggregated")],
    config_file: ConfigOption = None,
    start: StartOption = None,
    end: EndOption = None,
    timezone: TimezoneOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot duration in minutes")] = None,
    start_hour: Annotated[Optional[int], typer.Option("--start-hour", help="First hour of the day window")] = None,
    end_hour: Annotated[Optional[int], typer.Option("--end-hour", help="Hour the day window closes")] = None,
    verbose: VerboseOption = False,
):
    """
    Show per-day time slots and the top suggestions for each day.
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        start_date, end_date, tz = _resolve_range(config, start, end, timezone)
        request = AvailabilityRequest(
            account_id=account,
            start_date=start_date,
            end_date=end_date,
            timezone=tz,
            slot_duration_minutes=duration or config.defaults.slot_duration_minutes,
            work_hours=WorkHours(
                start_hour=config.defaults.start_hour if start_hour is None else start_hour,
                end_hour=config.defaults.end_hour if end_hour is None else end_hour,
            ),
        )
        results = asyncio.run(_build_service(config).get_availability(request))
    except (AvailabilityError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    for result in results:
        table = Table(title=f"{result.date.isoformat()} ({tz})", show_header=True, header_style="bold cyan")
        table.add_column("Slot", style="bold")
        table.add_column("Status")
        for slot in result.time_slots:
            status = "[green]free[/green]" if slot.available else "[red]busy[/red]"
            table.add_row(f"{slot.start.format('HH:mm')} - {slot.end.format('HH:mm')}", status)

        console.print()
        console.print(table)

        suggestions = get_suggested_time_slots(result.time_slots, config.defaults.max_suggestions)
        if suggestions:
            console.print(f"  Suggested: [bold green]{', '.join(suggestions)}[/bold green]")
        else:
            console.print("  [yellow]No free slots on this day.[/yellow]")
    console.print()


@app.command()
def suggest(
    account: Annotated[str, typer.Argument(help="Account id whose calendars are aggregated")],
    config_file: ConfigOption = None,
    timezone: TimezoneOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    days_ahead: Annotated[int, typer.Option("--days-ahead", help="Number of upcoming days to search")] = 7,
    preferred_hour: Annotated[int, typer.Option("--preferred-hour", help="Hour to try first")] = 9,
    max_suggestions: Annotated[int, typer.Option("--max", help="Maximum number of suggestions")] = 5,
    verbose: VerboseOption = False,
):
    """
    Suggest free meeting times over the coming days.
    """
    _configure_logging(verbose)
    if days_ahead < 1:
        console.print("[yellow]Nothing to search: --days-ahead must be at least 1.[/yellow]")
        return

    try:
        config = _load_config(config_file)
        suggestions = asyncio.run(
            _build_service(config).suggest_meeting_times(
                account_id=account,
                timezone=timezone or config.timezone,
                duration_minutes=duration or config.defaults.slot_duration_minutes,
                preferred_start_hour=preferred_hour,
                days_ahead=days_ahead,
                work_hours=config.defaults.get_work_hours(),
                max_suggestions=max_suggestions,
            )
        )
    except (AvailabilityError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _print_suggestions(suggestions)


@app.command()
def check(
    account: Annotated[str, typer.Argument(help="Account id whose calendars are checked")],
    at: Annotated[
        Optional[List[str]],
        typer.Option("--at", help="Requested start time (e.g. 2025-11-17T10:00). Repeatable."),
    ] = None,
    config_file: ConfigOption = None,
    timezone: Annotated[
        Optional[str],
        typer.Option("--timezone", "-t", help="IANA timezone. Defaults to the primary calendar's."),
    ] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    days_ahead: Annotated[int, typer.Option("--days-ahead", help="Days searched for alternatives")] = 7,
    max_suggestions: Annotated[int, typer.Option("--max", help="Maximum number of alternatives")] = 5,
    verbose: VerboseOption = False,
):
    """
    Check requested meeting times and suggest alternatives on conflict.
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        service = _build_service(config)

        async def run():
            tz = timezone or await service.resolve_account_timezone(account)
            return await service.find_meeting_availability(
                account_id=account,
                requested_starts=[pendulum.parse(value, tz=tz) for value in at or []],
                duration_minutes=duration or config.defaults.slot_duration_minutes,
                timezone=tz,
                days_ahead=days_ahead,
                work_hours=config.defaults.get_work_hours(),
                max_suggestions=max_suggestions,
            )

        availability = asyncio.run(run())
    except (AvailabilityError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if availability.requested_times:
        console.print(f"[bold green]✓ Free at the requested time(s) ({availability.timezone}):[/bold green]")
        for slot in availability.requested_times:
            console.print(f"  {slot.format_display()}")
        console.print()

    if availability.has_conflicts:
        console.print("[yellow]⚠ Some requested times conflict with existing events.[/yellow]\n")

    if availability.has_conflicts or not availability.requested_times:
        _print_suggestions(availability.suggested_times)


@app.command()
def list_connections(
    config_file: ConfigOption = None,
):
    """
    List all configured calendar connections.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not config.connections:
        console.print("[yellow]No connections defined in the config file.[/yellow]")
        return

    table = Table(
        title="Calendar connections",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Connection", style="bold yellow")
    table.add_column("Account")
    table.add_column("Provider")
    table.add_column("Enabled calendars", style="dim")

    for entry in config.connections:
        connection = entry.to_connection()
        provider = connection.provider if connection.is_connected else f"{connection.provider} (disconnected)"
        table.add_row(
            connection.connection_id,
            connection.account_id,
            provider,
            ", ".join(connection.enabled_calendar_ids()) or "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]availabilityfinder[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
