"""
Main CLI application using Typer.
"""

import asyncio
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Annotated, Optional
from uuid import UUID

import pendulum
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.console_notifier import ConsoleNotifier
from ..adapters.json_store import JsonFileStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..domain.models import AppointmentStatus, RecurrenceType
from ..domain.provider import WEEKDAY_NAMES
from ..services.booking import BookingService
from ..services.errors import ErrorCategory, describe_error
from ..services.notifications import NotificationDispatcher, ReminderSweep, ReminderWorker
from ..services.providers import ProviderService
from ..services.requests import (
    AppointmentQuery,
    AppointmentRef,
    AvailabilityQuery,
    BookingRequest,
    CancelRequest,
    RescheduleRequest,
)

app = typer.Typer(
    name="slotbooker",
    help="Book and manage provider appointments",
    add_completion=False
)

console = Console()


class Context:
    """Loaded configuration, store and the effective current time."""

    def __init__(self, config: AppConfig, now: datetime):
        self.config = config
        self.now = now
        self.store = JsonFileStore(config.store_path)

    def booking(self) -> BookingService:
        return BookingService(self.store, timezone=self.config.timezone)

    def providers(self) -> ProviderService:
        return ProviderService(self.store)


def _load_config(config_file: Optional[Path]) -> AppConfig:
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _parse_weekday(value: str) -> int:
    """Accept 0-6 or a (prefix of a) weekday name."""
    if value.isdigit() and 0 <= int(value) <= 6:
        return int(value)

    for idx, name in enumerate(WEEKDAY_NAMES):
        if len(value) >= 2 and name.lower().startswith(value.lower()):
            return idx

    raise typer.BadParameter(f"Unknown weekday: {value}")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value}")


def _parse_time(value: str) -> time:
    try:
        return time.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected HH:MM, got {value}")


def _parse_datetime(value: str, tz: str) -> datetime:
    try:
        return pendulum.parse(value, tz=tz).in_timezone(tz)
    except Exception:
        raise typer.BadParameter(f"Expected YYYY-MM-DD HH:MM, got {value}")


def _run(ctx: typer.Context, coro_factory):
    """Run one service call and turn failures into a readable exit."""
    try:
        return asyncio.run(coro_factory(ctx.obj))
    except (ValidationError, SchedulingError) as exc:
        _print_error(exc)
        raise typer.Exit(1)
    except Exception as exc:
        _print_error(exc)
        raise typer.Exit(2)


def _print_error(exc: BaseException) -> None:
    error = describe_error(exc)
    console.print(f"[bold red]Error ({error.code}):[/bold red] {error.message}")
    for detail in error.details:
        console.print(f"  {detail['field']}: {detail['message']}")
    if error.category is ErrorCategory.SYSTEM:
        console.print("[dim]Run with --verbose for details.[/dim]")


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Treat this moment (YYYY-MM-DD HH:MM) as the current time.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Manage providers, availability and appointments stored in a local JSON file.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    current = _parse_datetime(now, config.timezone) if now else pendulum.now(config.timezone)
    try:
        ctx.obj = Context(config, current)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command("provider-add")
def provider_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Provider name")],
    email: Annotated[str, typer.Argument(help="Provider email (unique)")],
    specialty: Annotated[str, typer.Argument(help="Specialty")],
):
    """
    Register a new service provider.
    """
    provider = _run(ctx, lambda c: c.providers().create_provider(name, email, specialty, c.now))
    console.print(f"[green]✓ Provider created:[/green] {provider.id}")


@app.command("provider-update")
def provider_update(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
    name: Annotated[str, typer.Argument(help="Provider name")],
    email: Annotated[str, typer.Argument(help="Provider email (unique)")],
    specialty: Annotated[str, typer.Argument(help="Specialty")],
):
    """
    Update a provider's details.
    """
    _run(ctx, lambda c: c.providers().update_provider(provider_id, name, email, specialty, c.now))
    console.print("[green]✓ Provider updated[/green]")


@app.command()
def providers(
    ctx: typer.Context,
    active_only: Annotated[bool, typer.Option("--active-only", help="Hide deactivated providers.")] = False,
):
    """
    List all providers with their working hours.
    """
    rows = _run(ctx, lambda c: c.providers().list_providers(active_only=active_only))
    if not rows:
        console.print("[yellow]No providers registered.[/yellow]")
        return

    table = Table(title="Providers", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="bold yellow")
    table.add_column("E-Mail")
    table.add_column("Specialty")
    table.add_column("Active")
    table.add_column("Working hours")

    for provider in rows:
        hours = ", ".join(str(wh) for wh in provider.working_hours if wh.is_active) or "-"
        table.add_row(
            str(provider.id),
            provider.name,
            provider.email,
            provider.specialty,
            "yes" if provider.is_active else "no",
            hours,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def deactivate(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
):
    """
    Stop accepting new bookings for a provider.
    """
    _run(ctx, lambda c: c.providers().deactivate_provider(provider_id, c.now))
    console.print("[green]✓ Provider deactivated[/green]")


@app.command()
def activate(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
):
    """
    Accept bookings for a deactivated provider again.
    """
    _run(ctx, lambda c: c.providers().activate_provider(provider_id, c.now))
    console.print("[green]✓ Provider activated[/green]")


@app.command()
def hours(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
    weekday: Annotated[str, typer.Argument(help="Weekday (0-6 or name, e.g. 'mon')")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="End time (HH:MM)")],
):
    """
    Set the working hours for one weekday.
    """
    day = _parse_weekday(weekday)
    start_time, end_time = _parse_time(start), _parse_time(end)
    _run(ctx, lambda c: c.providers().add_working_hours(provider_id, day, start_time, end_time, c.now))
    console.print(f"[green]✓ Working hours set for {WEEKDAY_NAMES[day]}[/green]")


@app.command()
def block(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
    start: Annotated[str, typer.Argument(help="Block start (YYYY-MM-DD HH:MM)")],
    end: Annotated[str, typer.Argument(help="Block end (YYYY-MM-DD HH:MM)")],
    reason: Annotated[str, typer.Option("--reason", "-r", help="Why the time is blocked")] = "",
):
    """
    Block an absolute time interval for a provider.
    """
    tz = ctx.obj.config.timezone
    start_dt, end_dt = _parse_datetime(start, tz), _parse_datetime(end, tz)
    _run(ctx, lambda c: c.providers().block_time(provider_id, start_dt, end_dt, reason, c.now))
    console.print("[green]✓ Time blocked[/green]")


@app.command()
def book(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
    on_date: Annotated[str, typer.Argument(metavar="DATE", help="Appointment date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    email: Annotated[str, typer.Option("--email", help="Customer email")],
    phone: Annotated[str, typer.Option("--phone", help="Customer phone")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes (15, 30, 45, 60)")] = 30,
    repeat: Annotated[Optional[RecurrenceType], typer.Option("--repeat", help="Repeat weekly or monthly")] = None,
    interval: Annotated[int, typer.Option("--interval", help="Repeat every N weeks/months")] = 1,
    until: Annotated[Optional[str], typer.Option("--until", help="Last date for repetitions (YYYY-MM-DD)")] = None,
):
    """
    Book an appointment, optionally repeating.
    """
    payload = {
        "provider_id": provider_id,
        "customer": {"name": name, "email": email, "phone": phone},
        "appointment_date": on_date,
        "start_time": start,
        "duration_minutes": duration,
    }
    if repeat is not None:
        payload["recurrence"] = {"type": repeat, "interval": interval, "end_date": until}

    async def _book(c: Context):
        return await c.booking().book(BookingRequest(**payload), c.now)

    result = _run(ctx, _book)
    console.print(f"[green]✓ Appointment booked:[/green] {result.appointment_id}")
    if repeat is not None:
        console.print(f"  Occurrences created: {result.total_created}")
        if not result.expansion_complete:
            console.print("[yellow]⚠ Not every occurrence could be created; the series is incomplete.[/yellow]")


@app.command()
def cancel(
    ctx: typer.Context,
    appointment_id: Annotated[UUID, typer.Argument(help="Appointment id")],
    reason: Annotated[str, typer.Option("--reason", "-r", help="Cancellation reason")] = "",
):
    """
    Cancel a scheduled appointment.
    """
    request = CancelRequest(appointment_id=appointment_id, reason=reason)
    _run(ctx, lambda c: c.booking().cancel(request, c.now))
    console.print("[green]✓ Appointment cancelled[/green]")


@app.command()
def reschedule(
    ctx: typer.Context,
    appointment_id: Annotated[UUID, typer.Argument(help="Appointment id")],
    on_date: Annotated[str, typer.Argument(metavar="DATE", help="New date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="New start time (HH:MM)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes (15, 30, 45, 60)")] = 30,
):
    """
    Move an appointment to a new date and time.
    """
    request = RescheduleRequest(
        appointment_id=appointment_id,
        new_date=_parse_date(on_date),
        new_start_time=_parse_time(start),
        duration_minutes=duration,
    )
    _run(ctx, lambda c: c.booking().reschedule(request, c.now))
    console.print("[green]✓ Appointment rescheduled[/green]")


@app.command()
def complete(
    ctx: typer.Context,
    appointment_id: Annotated[UUID, typer.Argument(help="Appointment id")],
):
    """
    Mark an appointment as completed.
    """
    _run(ctx, lambda c: c.booking().complete(AppointmentRef(appointment_id=appointment_id), c.now))
    console.print("[green]✓ Appointment completed[/green]")


@app.command("no-show")
def no_show(
    ctx: typer.Context,
    appointment_id: Annotated[UUID, typer.Argument(help="Appointment id")],
):
    """
    Mark an appointment as a no-show.
    """
    _run(ctx, lambda c: c.booking().mark_no_show(AppointmentRef(appointment_id=appointment_id), c.now))
    console.print("[green]✓ Appointment marked as no-show[/green]")


@app.command()
def slots(
    ctx: typer.Context,
    provider_id: Annotated[UUID, typer.Argument(help="Provider id")],
    on_date: Annotated[str, typer.Argument(metavar="DATE", help="Date (YYYY-MM-DD)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes (15, 30, 45, 60)")] = 30,
):
    """
    Show available start times for a provider on a date.
    """
    query = AvailabilityQuery(provider_id=provider_id, on_date=_parse_date(on_date), duration_minutes=duration)
    found = _run(ctx, lambda c: c.booking().available_slots(query, now=c.now))

    if not found:
        console.print("[yellow]⚠ No available slots found.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(found)} available slot(s):[/bold green]\n")
    for slot in found:
        console.print(f"  {slot}")
    console.print()


@app.command()
def appointments(
    ctx: typer.Context,
    provider_id: Annotated[Optional[UUID], typer.Option("--provider", help="Filter by provider id")] = None,
    from_date: Annotated[Optional[str], typer.Option("--from", help="First date (YYYY-MM-DD)")] = None,
    to_date: Annotated[Optional[str], typer.Option("--to", help="Last date (YYYY-MM-DD)")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="Filter by customer email")] = None,
    status: Annotated[Optional[AppointmentStatus], typer.Option("--status", help="Filter by status")] = None,
):
    """
    List appointments ordered by date and time.
    """
    async def _list(c: Context):
        query = AppointmentQuery(
            provider_id=provider_id,
            from_date=from_date,
            to_date=to_date,
            customer_email=email,
            status=status,
        )
        return await c.booking().list_appointments(query)

    rows = _run(ctx, _list)
    if not rows:
        console.print("[yellow]No appointments found.[/yellow]")
        return

    table = Table(title="Appointments", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="dim")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Customer", style="bold yellow")
    table.add_column("Status")
    table.add_column("Series")

    for appt in rows:
        series = "parent" if appt.is_recurring else ("child" if appt.parent_appointment_id else "")
        table.add_row(
            str(appt.id),
            appt.appointment_date.isoformat(),
            str(appt.slot),
            f"{appt.customer.name} <{appt.customer.email}>",
            appt.status.value,
            series,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def remind(
    ctx: typer.Context,
    watch: Annotated[bool, typer.Option("--watch", help="Keep running, repeating every reminder interval (Ctrl+C stops).")] = False,
):
    """
    Queue reminders for tomorrow and deliver every pending notification.
    """
    def _dispatcher(c: Context) -> NotificationDispatcher:
        return NotificationDispatcher(
            c.store,
            ConsoleNotifier(console),
            max_attempts=c.config.notifications.max_attempts,
        )

    if watch:
        async def _watch(c: Context):
            settings = c.config.notifications
            worker = ReminderWorker(
                ReminderSweep(c.store),
                _dispatcher(c),
                timezone=c.config.timezone,
                interval=settings.reminder_interval(),
                failure_backoff=settings.failure_backoff(),
            )
            await worker.run(asyncio.Event())

        console.print(
            f"[cyan]Watching for reminders every {ctx.obj.config.notifications.reminder_interval_minutes} minute(s)...[/cyan]"
        )
        try:
            _run(ctx, _watch)
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopped.[/yellow]")
        return

    async def _remind(c: Context):
        queued = await ReminderSweep(c.store).run_once(c.now)
        return queued, await _dispatcher(c).dispatch_pending(c.now)

    queued, report = _run(ctx, _remind)
    console.print(
        f"\n[bold]Reminders queued:[/bold] {queued}  "
        f"[bold]sent:[/bold] {report.sent}  [bold]failed:[/bold] {report.failed}"
    )


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
