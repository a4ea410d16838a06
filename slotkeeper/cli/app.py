"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Annotated, Tuple

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.google_calendar import GoogleCalendarClient
from ..adapters.host_directory import HostDirectory
from ..adapters.mock_calendar import MockCalendarClient
from ..adapters.sql_booking_store import SqlBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import NotFoundError, SchedulingError, SlotTakenError, ValidationError
from ..domain.models import AvailabilityResult, BookingRequest, DateRange
from ..services.availability import AvailabilityService
from ..services.booking import BookingService
from ..services.busy_time_cache import BusyTimeCache

app = typer.Typer(
    name="slotkeeper",
    help="Compute bookable slots and commit bookings for hosts",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    slotkeeper command line interface.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _build_services(config: AppConfig, mock: bool) -> Tuple[HostDirectory, AvailabilityService, BookingService]:
    """
    Wire adapters and services for one CLI invocation.

    A single busy-time cache is shared by both services so that a booking
    invalidates what availability reads.
    """
    policy = config.scheduling
    directory = HostDirectory(config.hosts)
    store = SqlBookingStore.from_url(config.database_url)
    cache = BusyTimeCache()

    if mock:
        calendar_client = MockCalendarClient()
    else:
        calendar_client = GoogleCalendarClient(timeout=policy.calendar_timeout_seconds)

    availability = AvailabilityService(
        host_lookup=directory,
        calendar_client=calendar_client,
        booking_store=store,
        busy_time_cache=cache,
        policy=policy,
    )
    booking = BookingService(
        booking_store=store,
        busy_time_cache=cache,
        host_lookup=directory,
        policy=policy,
    )
    return directory, availability, booking


def _render_availability(result: AvailabilityResult) -> None:
    """Print availability as a table, one row per day."""
    table = Table(
        title=f"Available slots ({result.host_timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Date", style="bold yellow")
    table.add_column("Day")
    table.add_column("Slots")

    for day in result.days:
        slots = ", ".join(slot.start[11:16] for slot in day.slots)
        table.add_row(day.date, day.day_label, slots or "[dim]-[/dim]")

    console.print()
    console.print(table)

    if result.gcal_degraded:
        console.print(
            "[yellow]⚠ External calendar unavailable: slots only account for confirmed bookings.[/yellow]"
        )
    console.print()


@app.command()
def availability(
    host_id: Annotated[str, typer.Argument(help="Host id from the config file")],
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--from", help="First day (YYYY-MM-DD, host-local). Defaults to tomorrow.")] = None,
    days: Annotated[int, typer.Option("--days", "-d", min=1, max=62, help="Number of days to show")] = 14,
    mock: Annotated[bool, typer.Option("--mock", help="Use mock calendar data instead of Google Calendar.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw JSON result.")] = False,
):
    """
    Show bookable slots of a host.

    Examples:

        slotkeeper availability studio-rome

        slotkeeper availability studio-rome --from 2026-11-02 --days 7 --mock
    """
    config = _load_config(config_file)
    directory, availability_service, _ = _build_services(config, mock)

    try:
        host = directory.get_host(host_id)
    except NotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    tz = host.timezone
    if start:
        try:
            range_start = pendulum.from_format(start, "YYYY-MM-DD", tz=tz).start_of("day")
        except ValueError as e:
            console.print(f"[red]Could not parse start date: {e}[/red]")
            raise typer.Exit(1)
    else:
        range_start = pendulum.now(tz).add(days=1).start_of("day")

    date_range = DateRange(start=range_start, end=range_start.add(days=days))

    try:
        result = asyncio.run(availability_service.get_available_slots(host_id, date_range))
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render_availability(result)


@app.command()
def book(
    host_id: Annotated[str, typer.Argument(help="Host id from the config file")],
    start: Annotated[str, typer.Argument(help="Slot start, host-local wall clock (YYYY-MM-DDTHH:MM)")],
    customer: Annotated[str, typer.Option("--customer", help="Customer id")],
    package: Annotated[str, typer.Option("--package", help="Package id")],
    config_file: ConfigOption = None,
    mock: Annotated[bool, typer.Option("--mock", help="Use mock calendar data instead of Google Calendar.")] = False,
):
    """
    Book one slot for a customer.

    Exits with code 2 and SLOT_TAKEN when the slot is already booked.
    """
    config = _load_config(config_file)
    directory, _, booking_service = _build_services(config, mock)

    try:
        host = directory.get_host(host_id)
        start_time = pendulum.parse(start, tz=host.timezone)
        if not isinstance(start_time, pendulum.DateTime):
            raise ValueError(f"expected a date and time, got '{start}'")
        request = BookingRequest(
            host_id=host_id,
            customer_id=customer,
            package_id=package,
            start_time=start_time,
            end_time=start_time + config.scheduling.slot_length(),
        )
        booking = booking_service.create_confirmed_booking(request)
    except SlotTakenError as e:
        console.print(f"[bold yellow]{e.code}:[/bold yellow] {e}. Pick another slot.")
        raise typer.Exit(2)
    except (NotFoundError, ValidationError) as e:
        console.print(f"[bold red]{e.code}:[/bold red] {e}")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Could not parse start time: {e}[/red]")
        raise typer.Exit(1)
    except SchedulingError as e:
        console.print(f"[bold red]{e.code}:[/bold red] Could not complete the booking: {e}")
        raise typer.Exit(1)

    local_start = booking.start_time.in_timezone(host.timezone)
    console.print(
        f"[bold green]✓ Booked[/bold green] {local_start.format('ddd D MMM YYYY HH:mm', locale='en')} "
        f"({host.timezone}) for {host.display_name()} [dim]id={booking.id}[/dim]"
    )


@app.command()
def hosts(
    config_file: ConfigOption = None,
):
    """
    List all configured hosts.
    """
    config = _load_config(config_file)

    if not config.hosts:
        console.print("[yellow]No hosts defined in the config file.[/yellow]")
        return

    table = Table(
        title="Configured hosts",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Timezone", style="dim")
    table.add_column("Calendar", style="dim")

    for host in config.hosts:
        table.add_row(
            host.id,
            host.display_name(),
            host.timezone,
            host.calendar.calendar_id if host.calendar else "-"
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
    console.print(f"\n[bold cyan]slotkeeper[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
