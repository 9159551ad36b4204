# -*- coding: utf-8 -*-
import asyncio
import logging
import typing as t
from datetime import date

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from agenda.directory import StudentDirectory
from agenda.errors import AgendaError
from agenda.history import filter_history, fetch_student_history
from agenda.lifecycle import ActionOutcome, RequestLifecycleController, can_cancel, can_respond
from agenda.mappers import agenda_kind_from_type, month_date_range, pending_to_agenda
from agenda.models import AgendaData, RequestForm
from agenda.reconciler import AgendaReconciler, AgendaSnapshot
from agenda.views import bucket_by_week, group_by_date, request_tabs, status_badge
from booking_api import config
from booking_api.counselor_appointments import get_department_available_slots, get_unavailable_slots
from booking_api.counselor_requests import get_counselor_requests
from booking_api.result import ApiError, Ok
from booking_api.session import SessionContext
from booking_api.students import get_student_classifications, get_student_profile

T = t.TypeVar("T")

console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    "Confirmed": "green",
    "Pending Your Reply": "yellow",
    "Pending Student": "yellow",
    "Declined by You": "red",
    "Declined by Student": "red",
}

CLASSIFICATION_STYLES = {
    "Excelling": "green",
    "Thriving": "green",
    "Struggling": "yellow",
    "InCrisis": "bold red",
}


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich on the error console."""
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(message: str) -> t.NoReturn:
    err_console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(1)


def run_async(coro: t.Coroutine[t.Any, t.Any, T]) -> T:
    """Run a coroutine to completion, reporting agenda errors once the loop has closed."""
    try:
        return asyncio.run(coro)
    except AgendaError as e:
        fail(str(e))


def print_api_errors(errors: t.Iterable[ApiError]) -> None:
    for error in errors:
        err_console.print(f"[red]Error:[/red] {error.message}")


def create_agenda_table(agendas: t.Iterable[AgendaData], title: str) -> Table:
    """Create a table of agendas, one section per day."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Date", style="cyan")
    table.add_column("Time", style="yellow")
    table.add_column("Type", style="white")
    table.add_column("Kind", style="dim")
    table.add_column("Student", style="white")
    table.add_column("Status")
    table.add_column("ID", style="dim")

    for day, entries in group_by_date(agendas).items():
        for agenda in entries:
            badge = status_badge(agenda)
            actions = []
            if can_respond(agenda):
                actions.append("accept/decline")
            if can_cancel(agenda):
                actions.append("cancel")
            table.add_row(
                day,
                f"{agenda.start_time} → {agenda.end_time}",
                agenda.agenda_type,
                "request" if agenda.is_request else "appointment",
                agenda.student_name,
                Text(badge, style=STATUS_STYLES.get(badge, "white")),
                f"{agenda.id}" + (f" ({', '.join(actions)})" if actions else ""),
            )
        table.add_section()

    return table


def print_outcome(outcome: ActionOutcome) -> None:
    if outcome.ok:
        console.print(f"[bold green]✓[/bold green] {outcome.message}")
    else:
        fail(outcome.message)


def _visible_month(year: t.Optional[int], month: t.Optional[int]) -> tuple[int, int]:
    """CLI months are 1-indexed; the core works with 0-indexed months."""
    today = date.today()
    return (year or today.year, (month or today.month) - 1)


async def load_calendar(session: SessionContext, year: int, month: int) -> AgendaReconciler:
    """Load the student directory and the merged agenda list for one month."""
    directory = StudentDirectory()
    reconciler = AgendaReconciler(session, directory, year, month)
    await reconciler.on_session_available(session)

    if directory.last_error:
        err_console.print(
            f"[yellow]Warning:[/yellow] student list is incomplete ({directory.last_error.message})"
        )
    if not directory.is_ready:
        raise AgendaError("No students could be loaded; calendar was not fetched.")
    return reconciler


def print_snapshot(snapshot: AgendaSnapshot) -> None:
    confirmed = sum(1 for a in snapshot.agendas if a.status == "confirmed")
    pending = sum(1 for a in snapshot.agendas if a.status == "pending")

    stats_text = Text()
    stats_text.append("Confirmed appointments: ", style="white")
    stats_text.append(f"{confirmed}", style="bold green")
    stats_text.append("\n")
    stats_text.append("Pending requests: ", style="white")
    stats_text.append(f"{pending}", style="bold yellow")
    console.print(Panel(stats_text, title=f"📅 {snapshot.year}-{snapshot.month + 1:02d}", border_style="blue"))

    print_api_errors(snapshot.errors)
    if snapshot.agendas:
        console.print(create_agenda_table(snapshot.agendas, "Schedule"))


month_options = [
    click.option("--year", type=int, help="Year to show (default: current)."),
    click.option("--month", type=click.IntRange(1, 12), help="Month to show, 1-12 (default: current)."),
]


def with_month(func: t.Callable) -> t.Callable:
    for option in reversed(month_options):
        func = option(func)
    return func


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--token", envvar="COUNSELOR_TOKEN", help="Bearer token issued at sign-in.")
@click.option(
    "--role",
    type=click.Choice(["counselor", "admin", "super_admin"]),
    default="counselor",
    envvar="COUNSELOR_ROLE",
    show_default=True,
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, token: t.Optional[str], role: str, verbose: bool) -> None:
    """Counselor calendar: appointments, requests and student history.

    An ``obj`` dict passed by the caller overrides SessionContext fields such
    as the backend URLs or the httpx transport.
    """
    configure_logging(verbose)
    overrides = ctx.obj if isinstance(ctx.obj, dict) else {}
    session = SessionContext(token=token, role=role, **overrides)
    if not session.authenticated:
        fail("No session token. Pass --token or set COUNSELOR_TOKEN.")
    ctx.obj = session


@main.command()
@with_month
@click.option("--by-week", is_flag=True, help="Split upcoming entries into today, this week and later.")
@click.pass_obj
def calendar(session: SessionContext, year: t.Optional[int], month: t.Optional[int], by_week: bool) -> None:
    """Show confirmed appointments and pending requests for a month."""
    reconciler = run_async(load_calendar(session, *_visible_month(year, month)))
    if not by_week:
        print_snapshot(reconciler.snapshot)
        return

    print_api_errors(reconciler.errors)
    buckets = bucket_by_week(reconciler.agendas)
    for title, entries in (("Today", buckets.today), ("This Week", buckets.upcoming), ("Next Week", buckets.next_week)):
        if entries:
            console.print(create_agenda_table(entries, title))
        else:
            console.print(f"[dim]{title}: nothing scheduled.[/dim]")


@main.command()
@click.option("--declined", is_flag=True, help="Show declined requests instead of pending ones.")
@click.pass_obj
def requests(session: SessionContext, declined: bool) -> None:
    """List appointment requests."""

    async def run() -> tuple[list[AgendaData], list[AgendaData]]:
        directory = StudentDirectory()
        await directory.ensure_loaded(session)
        result = await get_counselor_requests(session)
        if not isinstance(result, Ok):
            raise AgendaError(result.error.message)
        return request_tabs(pending_to_agenda(r, directory.students) for r in result.value)

    pending, declined_list = run_async(run())
    rows = declined_list if declined else pending
    title = "Declined Requests" if declined else "Pending Requests"
    if not rows:
        console.print(f"[dim]No {title.lower()}.[/dim]")
        return
    console.print(create_agenda_table(rows, title))


def _respond(session: SessionContext, request_id: str, year: int, month: int, accept: bool) -> None:
    async def run() -> ActionOutcome:
        reconciler = await load_calendar(session, year, month)
        agenda = reconciler.find(request_id)
        if agenda is None:
            raise AgendaError(f"Request {request_id} is not among the pending requests for that month.")
        controller = RequestLifecycleController(reconciler)
        controller.select(agenda)
        return await (controller.accept(agenda) if accept else controller.decline(agenda))

    print_outcome(run_async(run()))


@main.command()
@click.argument("request_id")
@with_month
@click.pass_obj
def accept(session: SessionContext, request_id: str, year: t.Optional[int], month: t.Optional[int]) -> None:
    """Accept a request a student sent you, found in the given month."""
    _respond(session, request_id, *_visible_month(year, month), accept=True)


@main.command()
@click.argument("request_id")
@with_month
@click.pass_obj
def decline(session: SessionContext, request_id: str, year: t.Optional[int], month: t.Optional[int]) -> None:
    """Decline a request a student sent you, found in the given month."""
    _respond(session, request_id, *_visible_month(year, month), accept=False)


@main.command()
@click.argument("appointment_id")
@with_month
@click.pass_obj
def cancel(session: SessionContext, appointment_id: str, year: t.Optional[int], month: t.Optional[int]) -> None:
    """Cancel a confirmed appointment in the given month."""

    async def run() -> ActionOutcome:
        reconciler = await load_calendar(session, *_visible_month(year, month))
        agenda = reconciler.find(appointment_id)
        if agenda is None:
            raise AgendaError(f"Appointment {appointment_id} is not on the calendar for that month.")
        return await RequestLifecycleController(reconciler).cancel(agenda)

    print_outcome(run_async(run()))


@main.command()
@click.option("--student", "student_id", required=True, help="Student id.")
@click.option("--date", "day", required=True, help="Date as YYYY-MM-DD (at least 7 days ahead).")
@click.option("--start", "start_time", required=True, help="Start time as HH:MM.")
@click.option("--end", "end_time", required=True, help="End time as HH:MM.")
@click.option(
    "--type",
    "agenda_type",
    type=click.Choice(["Counseling", "Routine Interview"]),
    default="Counseling",
    show_default=True,
)
@click.pass_obj
def schedule(
    session: SessionContext,
    student_id: str,
    day: str,
    start_time: str,
    end_time: str,
    agenda_type: str,
) -> None:
    """Propose a consultation to a student."""
    form = RequestForm(
        student_id=student_id,
        date=day,
        start_time=start_time,
        end_time=end_time,
        agenda_kind=agenda_kind_from_type(agenda_type),
    )

    async def run() -> ActionOutcome:
        today = date.today()
        reconciler = await load_calendar(session, today.year, today.month - 1)
        return await RequestLifecycleController(reconciler).create(form)

    print_outcome(run_async(run()))


@main.command()
@click.argument("student_id")
@click.option(
    "--type",
    "session_type",
    type=click.Choice(["All", "Counseling", "Routine Interview", "Meeting", "Event"]),
    default="All",
    show_default=True,
)
@click.option(
    "--period",
    type=click.Choice(["All Time", "This Week", "This Month"]),
    default="All Time",
    show_default=True,
)
@click.pass_obj
def history(session: SessionContext, student_id: str, session_type: str, period: str) -> None:
    """Show a student's consultation history."""
    result = run_async(fetch_student_history(session, student_id))
    if not isinstance(result, Ok):
        fail(result.error.message)

    entries = filter_history(result.value, session_type=session_type, period=period)
    if not entries:
        console.print("[dim]No consultations found.[/dim]")
        return

    table = Table(title=f"Consultations with {student_id}", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="cyan")
    table.add_column("Time", style="yellow")
    table.add_column("Session", style="white")
    for entry in entries:
        table.add_row(
            entry.starts_at.strftime("%b %d, %Y"),
            entry.starts_at.strftime("%I:%M %p").lstrip("0"),
            entry.session_type,
        )
    console.print(table)


@main.command()
@click.option(
    "--classification",
    type=click.Choice(["Excelling", "Thriving", "Struggling", "InCrisis"]),
    help="Only students with this classification.",
)
@click.option("--flagged/--not-flagged", default=None, help="Only flagged, or only unflagged, students.")
@click.option("--limit", type=click.IntRange(1, 200), default=config.STUDENT_PAGE_SIZE, show_default=True)
@click.option("--cursor", help="Cursor printed at the end of the previous page.")
@click.pass_obj
def students(
    session: SessionContext,
    classification: t.Optional[str],
    flagged: t.Optional[bool],
    limit: int,
    cursor: t.Optional[str],
) -> None:
    """List the department's students and their classifications."""
    result = run_async(get_student_classifications(
        session, classification=classification, is_flagged=flagged, cursor=cursor, limit=limit,
    ))
    if not isinstance(result, Ok):
        fail(result.error.message)

    page = result.value
    if not page.classifications:
        console.print("[dim]No students found.[/dim]")
        return

    table = Table(title="Students", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="white")
    table.add_column("Email", style="cyan")
    table.add_column("Classification")
    table.add_column("Flagged")
    for student in page.classifications:
        table.add_row(
            student.student_id,
            student.user_name or student.email,
            student.email,
            Text(student.classification, style=CLASSIFICATION_STYLES.get(student.classification, "white")),
            "[bold red]yes[/bold red]" if student.is_flagged else "no",
        )
    console.print(table)
    if page.hasMore:
        console.print(f"[dim]More students available: --cursor {page.nextCursor}[/dim]")


@main.command()
@click.argument("student_id")
@click.option("--email", required=True, envvar="COUNSELOR_EMAIL", help="Your sign-in email.")
@click.option("--password", prompt=True, hide_input=True, envvar="COUNSELOR_PASSWORD", help="Your sign-in password.")
@click.pass_obj
def profile(session: SessionContext, student_id: str, email: str, password: str) -> None:
    """Show a student's profile and mood check-ins."""
    result = run_async(get_student_profile(session, student_id, email, password))
    if not isinstance(result, Ok):
        fail(result.error.message)

    student = result.value
    details = Text()
    details.append(f"{student.user_name or student.email}\n", style="bold")
    details.append(f"{student.email}\n", style="cyan")
    details.append(f"{student.program_name or '-'}, {student.department_name or '-'}\n")
    details.append("Classification: ")
    details.append(student.classification or "-", style=CLASSIFICATION_STYLES.get(student.classification, "white"))
    if student.is_flagged:
        details.append("  FLAGGED", style="bold red")
    console.print(Panel(details, title=f"👤 {student.student_id}", border_style="blue"))

    if not student.mood_check_ins:
        console.print("[dim]No mood check-ins.[/dim]")
        return

    table = Table(title="Mood Check-ins", show_header=True, header_style="bold magenta")
    table.add_column("Checked in", style="cyan")
    table.add_column("Moods", style="white")
    for check_in in student.mood_check_ins:
        moods = [m for m in (check_in.mood_1, check_in.mood_2, check_in.mood_3) if m]
        table.add_row(check_in.checked_in_at, ", ".join(moods))
    console.print(table)


@main.command()
@with_month
@click.option("--department", is_flag=True, help="Show free department slots instead of taken ones.")
@click.option("--slot-duration", type=int, default=60, show_default=True)
@click.pass_obj
def availability(
    session: SessionContext,
    year: t.Optional[int],
    month: t.Optional[int],
    department: bool,
    slot_duration: int,
) -> None:
    """Show taken slots, or free department slots, for a month."""
    date_range = month_date_range(*_visible_month(year, month))

    if department:
        result = run_async(get_department_available_slots(
            session, date_range.start_date, date_range.end_date, slot_duration=slot_duration,
        ))
    else:
        result = run_async(get_unavailable_slots(session, date_range.start_date, date_range.end_date))
    if not isinstance(result, Ok):
        fail(result.error.message)

    table = Table(
        title="Available Slots" if department else "Unavailable Slots",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Start", style="cyan")
    table.add_column("End", style="yellow")
    table.add_column("Agenda", style="white")
    for slot in result.value:
        table.add_row(slot.start, slot.end, getattr(slot, "agenda", ""))
    console.print(table)


if __name__ == "__main__":
    main()
