"""
Main CLI application using Typer.
"""

import asyncio
import logging
from datetime import datetime, time
from functools import cached_property
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pendulum import Date, DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_store import JSONFileStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import FreeSlotsError, RepositoryError
from ..domain.models import Weekday
from ..services import AvailabilityService, BookingService, CalendarService

app = typer.Typer(
    name="freeslots",
    help="Find and book free slots from weekly availability rules",
    add_completion=False,
)
calendar_app = typer.Typer(help="Create, show and delete owner calendars.")
rule_app = typer.Typer(help="Manage weekly availability rules.")
app.add_typer(calendar_app, name="calendar")
app.add_typer(rule_app, name="rule")

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


class State:
    """Per-invocation configuration and lazily built services."""

    def __init__(self, config: AppConfig):
        self.config = config

    @cached_property
    def store(self) -> JSONFileStore:
        try:
            return JSONFileStore(self.config.data_file)
        except RepositoryError as exc:
            _fail(exc)

    @cached_property
    def calendars(self) -> CalendarService:
        return CalendarService(self.store, self.store, self.store)

    @cached_property
    def availability(self) -> AvailabilityService:
        return AvailabilityService(self.store, self.store)

    @cached_property
    def bookings(self) -> BookingService:
        return BookingService(self.store)

    def owner(self, identifier: str) -> str:
        return self.config.resolve_owner(identifier)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _fail(message: object) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _run(coroutine):
    """Run a service coroutine, turning domain errors into a clean exit."""
    try:
        return asyncio.run(coroutine)
    except (FreeSlotsError, ValueError) as exc:
        _fail(exc)


def _parse_moment(value: str, *, end_of_day: bool = False) -> DateTime:
    """
    Parse a date or date-time string into a naive DateTime.

    A bare date means midnight; with ``end_of_day`` it means the following
    midnight, so ``--end 2024-11-29`` includes the whole of that day.
    """
    try:
        moment = pendulum.parse(value.strip(), exact=True)
    except ValueError as exc:
        _fail(f"Could not parse date '{value}': {exc}")

    if isinstance(moment, DateTime):
        return moment.naive()

    if isinstance(moment, Date):
        day = pendulum.naive(moment.year, moment.month, moment.day)
        return day.add(days=1) if end_of_day else day

    _fail(f"Expected a date or date-time, got '{value}'")


def _determine_time_range(
    *,
    range_days: int,
    this_week: bool,
    next_week: bool,
    start_option: Optional[str],
    end_option: Optional[str],
) -> tuple[datetime, datetime]:
    """
    Resolve the search window from shortcut flags or explicit dates.
    Returns a half-open (start, end) pair.
    """
    if this_week and next_week:
        _fail("--this-week and --next-week cannot be used together.")

    now = pendulum.now().naive()
    next_monday = now.start_of("week").add(weeks=1)

    if this_week:
        return now, next_monday

    if next_week:
        return next_monday, next_monday.add(weeks=1)

    start_date = _parse_moment(start_option) if start_option else now.start_of("day")

    if end_option:
        end_date = _parse_moment(end_option, end_of_day=True)
    else:
        end_date = start_date.start_of("day").add(days=range_days)

    return start_date, end_date


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./freeslots.yaml")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level.")] = False,
):
    """
    Resolve free slots from weekly availability rules and book them.
    """
    config_path = config_file or get_default_config_path()
    if config_path.exists():
        try:
            config = AppConfig.load_from_yaml(config_path)
        except ValueError as exc:
            _fail(exc)
    elif config_file is not None:
        _fail(f"Config file not found: {config_file}")
    else:
        config = AppConfig()

    _configure_logging("DEBUG" if verbose else config.log_level)
    logger.debug("Using data file %s", config.data_file)
    ctx.obj = State(config)


@calendar_app.command("create")
def calendar_create(ctx: typer.Context, owner: Annotated[str, typer.Argument(help="Owner id or alias")]):
    """Create the calendar of an owner."""
    state: State = ctx.obj
    calendar = _run(state.calendars.create_calendar(state.owner(owner)))
    console.print(f"[green]✓ Calendar {calendar.id} created for {calendar.owner_id}[/green]")


@calendar_app.command("show")
def calendar_show(ctx: typer.Context, owner: Annotated[str, typer.Argument(help="Owner id or alias")]):
    """Show an owner's calendar and its weekly rules."""
    state: State = ctx.obj
    overview = _run(state.calendars.get_calendar(state.owner(owner)))

    console.print(f"\n[bold cyan]Calendar {overview.calendar.id}[/bold cyan] ({overview.calendar.owner_id})")
    _print_rules(overview.rules)


@calendar_app.command("delete")
def calendar_delete(ctx: typer.Context, owner: Annotated[str, typer.Argument(help="Owner id or alias")]):
    """Delete an owner's calendar together with its rules."""
    state: State = ctx.obj
    owner_id = state.owner(owner)
    _run(state.calendars.delete_calendar(owner_id))
    console.print(f"[green]✓ Calendar of {owner_id} deleted[/green]")


@rule_app.command("add")
def rule_add(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner id or alias")],
    day: Annotated[str, typer.Argument(help="Weekday, e.g. 'monday' or 'mon'")],
    start: Annotated[str, typer.Argument(help="Opening time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="Closing time (HH:MM)")],
    inactive: Annotated[bool, typer.Option("--inactive", help="Store the rule switched off.")] = False,
):
    """Add a weekly availability rule to an owner's calendar."""
    state: State = ctx.obj

    async def add():
        calendar = await state.calendars.require_calendar(state.owner(owner))
        return await state.availability.add_rule(
            calendar.id,
            Weekday.parse(day),
            time.fromisoformat(start.strip()),
            time.fromisoformat(end.strip()),
            active=not inactive,
        )

    rule = _run(add())
    console.print(f"[green]✓ Rule {rule.id} added: {rule}[/green]")


@rule_app.command("list")
def rule_list(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner id or alias")],
    day: Annotated[Optional[str], typer.Option("--day", help="Only rules for this weekday")] = None,
):
    """List the weekly rules of an owner's calendar."""
    state: State = ctx.obj

    async def list_rules():
        calendar = await state.calendars.require_calendar(state.owner(owner))
        return await state.availability.list_rules(calendar.id, day_of_week=day)

    _print_rules(_run(list_rules()))


@rule_app.command("remove")
def rule_remove(ctx: typer.Context, rule_id: Annotated[str, typer.Argument(help="Rule id")]):
    """Remove a weekly rule."""
    state: State = ctx.obj
    _run(state.availability.delete_rule(rule_id))
    console.print(f"[green]✓ Rule {rule_id} removed[/green]")


@app.command()
def slots(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner id or alias")],
    start: Annotated[Optional[str], typer.Option("--start", help="Start date or date-time")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (inclusive) or date-time (exclusive)")] = None,
    min_duration: Annotated[Optional[int], typer.Option("--min-duration", "-d", help="Minimum slot length in minutes")] = None,
    this_week: Annotated[bool, typer.Option("--this-week", help="Search from now to the end of this week.")] = False,
    next_week: Annotated[bool, typer.Option("--next-week", help="Search the coming week (Monday-Sunday).")] = False,
):
    """
    Find an owner's free slots.

    Examples:

        freeslots slots alice --next-week

        freeslots slots alice --start 2024-11-25 --end 2024-11-29 -d 30
    """
    state: State = ctx.obj
    owner_id = state.owner(owner)
    range_start, range_end = _determine_time_range(
        range_days=state.config.defaults.range_days,
        this_week=this_week,
        next_week=next_week,
        start_option=start,
        end_option=end,
    )
    minimum = min_duration if min_duration is not None else state.config.defaults.min_duration_minutes

    found = _run(state.calendars.find_free_slots(owner_id, range_start, range_end, minimum))

    console.print()
    if not found:
        console.print(
            "[yellow]⚠ No free slots found.[/yellow]\n"
            "Try a longer range or a shorter minimum duration."
        )
    else:
        console.print(f"[bold green]✓ {len(found)} free slot(s) for {owner_id}:[/bold green]\n")
        for slot in found:
            console.print(f"  {slot.format_display()}")
    console.print()


@app.command()
def book(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner id or alias")],
    correlation_id: Annotated[str, typer.Argument(help="Identifier of whatever originated the booking")],
    start: Annotated[str, typer.Argument(help="Start date-time")],
    end: Annotated[str, typer.Argument(help="End date-time")],
    title: Annotated[Optional[str], typer.Option("--title", help="Short title")] = None,
    description: Annotated[Optional[str], typer.Option("--description", help="Longer description")] = None,
):
    """Book a time span on an owner's calendar."""
    state: State = ctx.obj
    booking = _run(
        state.bookings.book(
            owner_id=state.owner(owner),
            correlation_id=correlation_id,
            start=_parse_moment(start),
            end=_parse_moment(end),
            title=title,
            description=description,
        )
    )
    console.print(f"[green]✓ Booking {booking.id} created: {booking.time_range}[/green]")


@app.command()
def bookings(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner id or alias")],
    start: Annotated[Optional[str], typer.Option("--start", help="Start date or date-time")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (inclusive) or date-time (exclusive)")] = None,
):
    """List an owner's bookings."""
    state: State = ctx.obj
    range_start = _parse_moment(start) if start else None
    range_end = _parse_moment(end, end_of_day=True) if end else None
    found = _run(state.bookings.list_bookings(state.owner(owner), range_start, range_end))

    if not found:
        console.print("[yellow]No bookings.[/yellow]")
        return

    table = Table(title="Bookings", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Time", style="bold yellow")
    table.add_column("Correlation")
    table.add_column("Title")
    table.add_column("Confirmed")

    for booking in found:
        table.add_row(
            booking.id,
            str(booking.time_range),
            booking.correlation_id,
            booking.title or "",
            "yes" if booking.confirmed else "no",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def confirm(ctx: typer.Context, booking_id: Annotated[str, typer.Argument(help="Booking id")]):
    """Mark a booking as confirmed."""
    state: State = ctx.obj
    _run(state.bookings.confirm(booking_id))
    console.print(f"[green]✓ Booking {booking_id} confirmed[/green]")


@app.command()
def cancel(ctx: typer.Context, booking_id: Annotated[str, typer.Argument(help="Booking id")]):
    """Cancel (delete) a booking."""
    state: State = ctx.obj
    _run(state.bookings.cancel(booking_id))
    console.print(f"[green]✓ Booking {booking_id} cancelled[/green]")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]freeslots[/bold cyan] version [bold]{__version__}[/bold]\n")


def _print_rules(rules) -> None:
    if not rules:
        console.print("[yellow]No rules defined.[/yellow]")
        return

    table = Table(title="Weekly rules", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Day", style="bold yellow")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Active")

    for rule in sorted(rules, key=lambda r: (r.day_of_week, r.start_time, r.end_time)):
        table.add_row(
            rule.id,
            rule.day_of_week.label,
            rule.start_time.strftime("%H:%M"),
            rule.end_time.strftime("%H:%M"),
            "yes" if rule.active else "no",
        )

    console.print()
    console.print(table)
    console.print()


if __name__ == "__main__":
    app()
