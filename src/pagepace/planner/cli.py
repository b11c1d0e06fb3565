"""Command-line interface for pagepace.

Built with Typer for commands and Rich for output.
"""

import math
from datetime import date
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import get_db
from .engine import DayStatus, PlanningError, ReportKind, generate_reading_options, month_range
from .log import setup_logger

# Create the main app
app = typer.Typer(
    name="pagepace",
    help="Plan a book by pages per day and keep the schedule honest.",
    no_args_is_help=True,
)

plan_app = typer.Typer(help="Manage reading plans and daily progress.")
app.add_typer(plan_app, name="plan")

# Rich console for pretty output
console = Console()


@app.callback()
def main_callback() -> None:
    """Configure logging from the environment."""
    try:
        config = get_config()
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)

    setup_logger(level=config.log_level, log_file=config.log_file)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def parse_date(value: str, label: str) -> date:
    """Parse a YYYY-MM-DD option or exit."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        print_error(f"Invalid {label} format. Use YYYY-MM-DD")
        raise typer.Exit(1)


def parse_plan_id(value: str) -> UUID:
    """Parse a plan ID or exit."""
    try:
        return UUID(value)
    except ValueError:
        print_error("Invalid plan ID format")
        raise typer.Exit(1)


def get_manager():
    """Build a schedule manager on the configured database and clock."""
    from .schedule import ScheduleManager

    config = get_config()
    return ScheduleManager(get_db(str(config.db_path)), clock=config.current_date)


def progress_bar(percentage: float) -> str:
    """Render a ten-cell progress bar."""
    if percentage <= 0:
        return "░░░░░░░░░░ 0%"
    filled = int(percentage / 10)
    return f"[green]{'█' * filled}[/green]{'░' * (10 - filled)} {percentage:.0f}%"


def change_status(
    plan_id: str,
    day: str,
    status: DayStatus,
    actual_pages: Optional[int] = None,
) -> None:
    """Apply a status change and report the rebalanced days."""
    from .schedule import ScheduleError

    uuid = parse_plan_id(plan_id)
    target = parse_date(day, "day")
    manager = get_manager()

    try:
        result = manager.set_day_status(uuid, target, status, actual_pages)
    except (PlanningError, ScheduleError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    label = {
        DayStatus.READ: f"read ({result.day.effective_pages} pages)",
        DayStatus.MISSED: "missed",
        DayStatus.UNSET: "open",
    }[result.day.status]
    print_success(f"{target} marked {label}")
    for warning in result.anomalies:
        print_warning(warning)
    if result.changed_days:
        console.print(f"[dim]Rebalanced {len(result.changed_days)} other day(s)[/dim]")


# ============================================================================
# Plan Commands
# ============================================================================


@plan_app.command("create")
def plan_create(
    name: str = typer.Argument(..., help="Plan name, usually the book title"),
    pages: int = typer.Option(..., "--pages", "-p", help="Total pages to read"),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="Start date (YYYY-MM-DD), default today"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="End date (YYYY-MM-DD)"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Read over this many days (instead of --end)"),
    from_month: Optional[str] = typer.Option(None, "--from-month", help="Start month name, e.g. January"),
    to_month: Optional[str] = typer.Option(None, "--to-month", help="End month name"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year for --from-month"),
    to_year: Optional[int] = typer.Option(None, "--to-year", help="Year for --to-month, default --year"),
    description: Optional[str] = typer.Option(None, "--desc", help="Description"),
) -> None:
    """Create a new reading plan and spread its pages over the days."""
    from .schedule import ReadingMode, ReadingPlanCreate

    config = get_config()
    manager = get_manager()
    mode = ReadingMode.CALENDAR

    try:
        if from_month or to_month:
            if start or end or days is not None:
                print_error("Give a month span or --start/--end/--days, not both")
                raise typer.Exit(1)
            first_year = year or config.current_date().year
            start_date, end_date = month_range(
                from_month or to_month,
                first_year,
                to_month or from_month,
                to_year or first_year,
            )
        else:
            start_date = parse_date(start, "start date") if start else config.current_date()
            end_date = parse_date(end, "end date") if end else None
            if end_date is not None and days is not None:
                print_error("Give either --end or --days, not both")
                raise typer.Exit(1)
            if end_date is None and days is None:
                print_error("Give --end, --days, or --from-month/--to-month")
                raise typer.Exit(1)
            if end_date is None:
                mode = ReadingMode.FIXED_DAYS

        plan = manager.create_plan(ReadingPlanCreate(
            name=name,
            description=description,
            total_pages=pages,
            start_date=start_date,
            end_date=end_date,
            days_to_read=days if mode == ReadingMode.FIXED_DAYS else None,
            reading_mode=mode,
        ))
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Created plan: {plan.name}")
    console.print(f"  ID: [cyan]{plan.id}[/cyan]")
    console.print(f"  {plan.start_date} to {plan.end_date} ({plan.total_days} days)")
    console.print(f"  About {math.ceil(plan.total_pages / plan.total_days)} pages per day")


@plan_app.command("options")
def plan_options(
    pages: int = typer.Argument(..., help="Total pages in the book"),
) -> None:
    """Show how many pages per day common plan lengths need."""
    try:
        options = generate_reading_options(pages)
    except PlanningError as e:
        print_error(str(e))
        raise typer.Exit(1)

    table = Table(title=f"Reading Options for {pages:,} pages")
    table.add_column("Days", justify="right", style="cyan")
    table.add_column("Pages/Day", justify="right", style="green")
    for option in options:
        table.add_row(str(option.days), str(option.pages_per_day))

    console.print(table)


@plan_app.command("list")
def plan_list(
    archived: bool = typer.Option(False, "--archived", "-a", help="Show archived plans instead"),
) -> None:
    """List reading plans."""
    manager = get_manager()
    plans = manager.get_archived_plans() if archived else manager.get_all_plans()

    if not plans:
        label = "archived reading plans" if archived else "reading plans"
        console.print(f"[dim]No {label} found.[/dim]")
        return

    table = Table(title="Archived Plans" if archived else "Reading Plans")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Name")
    table.add_column("Pages")
    table.add_column("Progress")
    table.add_column("Deadline")

    for plan in plans:
        table.add_row(
            str(plan.id)[:8],
            plan.name,
            f"{plan.pages_read:,}/{plan.total_pages:,}",
            progress_bar(plan.progress_percentage),
            str(plan.end_date),
        )

    console.print(table)


@plan_app.command("show")
def plan_show(
    plan_id: str = typer.Argument(..., help="Plan ID"),
) -> None:
    """Show a plan and its day-by-day schedule."""
    uuid = parse_plan_id(plan_id)
    manager = get_manager()

    plan = manager.get_plan(uuid)
    if not plan:
        print_error("Plan not found")
        raise typer.Exit(1)

    console.print(Panel(f"[bold]{plan.name}[/bold]", style="magenta"))
    if plan.description:
        console.print(f"[dim]{plan.description}[/dim]\n")

    today = get_config().current_date()
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Planned", justify="right")
    table.add_column("Read", justify="right")

    styles = {
        DayStatus.READ: "[green]✓ read[/green]",
        DayStatus.MISSED: "[red]✗ missed[/red]",
        DayStatus.UNSET: "[dim]○[/dim]",
    }
    for day in manager.get_days(uuid):
        marker = " [bold cyan]← today[/bold cyan]" if day.date == today else ""
        table.add_row(
            f"{day.date}{marker}",
            styles[day.status],
            str(day.planned_pages),
            str(day.effective_pages) if day.status == DayStatus.READ else "-",
        )

    console.print(table)
    console.print(f"\nProgress: {progress_bar(plan.progress_percentage)}")


@plan_app.command("read")
def plan_read(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    day: str = typer.Argument(..., help="Day (YYYY-MM-DD)"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Pages actually read"),
) -> None:
    """Mark a day as read."""
    change_status(plan_id, day, DayStatus.READ, pages)


@plan_app.command("missed")
def plan_missed(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    day: str = typer.Argument(..., help="Day (YYYY-MM-DD)"),
) -> None:
    """Mark a day as missed."""
    change_status(plan_id, day, DayStatus.MISSED)


@plan_app.command("clear")
def plan_clear(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    day: str = typer.Argument(..., help="Day (YYYY-MM-DD)"),
) -> None:
    """Clear a day's status so it takes a planned target again."""
    change_status(plan_id, day, DayStatus.UNSET)


@plan_app.command("progress")
def plan_progress(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    today: Optional[str] = typer.Option(None, "--today", "-t", help="Evaluate as of this day (YYYY-MM-DD)"),
) -> None:
    """Compare pages read with the schedule and suggest a catch-up target."""
    uuid = parse_plan_id(plan_id)
    manager = get_manager()

    as_of = parse_date(today, "today") if today else None
    report = manager.get_progress(uuid, today=as_of)
    if report is None:
        print_error("Plan not found")
        raise typer.Exit(1)

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Pages Read", f"{report.total_pages_read:,}/{report.total_pages:,}")
    table.add_row("Expected By Today", f"{report.expected_today:,}")
    table.add_row("Remaining", f"{report.remaining_pages:,} pages over {report.remaining_days} days")
    table.add_row("Missed Days", str(report.explicit_missed))
    table.add_row("Past Days Unread", str(report.implicit_past_unread))
    console.print(table)

    if report.kind == ReportKind.OVERDUE:
        console.print(Panel(report.message, title="Reading Period Ended", style="red"))
    elif report.kind == ReportKind.CATCH_UP:
        console.print(Panel(report.message, title="Catch-Up Suggestion", style="yellow"))
    else:
        console.print(f"[green]{report.message}[/green]")


@plan_app.command("pages")
def plan_pages(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    pages: int = typer.Argument(..., help="New total page count"),
) -> None:
    """Change a plan's total pages; only open days are rebalanced."""
    from .schedule import ReadingPlanUpdate

    uuid = parse_plan_id(plan_id)
    manager = get_manager()

    try:
        plan = manager.update_plan(uuid, ReadingPlanUpdate(total_pages=pages))
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not plan:
        print_error("Plan not found")
        raise typer.Exit(1)

    print_success(f"{plan.name} now has {plan.total_pages:,} pages")


@plan_app.command("archive")
def plan_archive(
    plan_id: str = typer.Argument(..., help="Plan ID"),
) -> None:
    """Archive a plan so it no longer shows in the list."""
    uuid = parse_plan_id(plan_id)
    plan = get_manager().archive_plan(uuid)
    if not plan:
        print_error("Plan not found")
        raise typer.Exit(1)

    print_success(f"Archived: {plan.name}")


@plan_app.command("unarchive")
def plan_unarchive(
    plan_id: str = typer.Argument(..., help="Plan ID"),
) -> None:
    """Restore an archived plan to the list."""
    uuid = parse_plan_id(plan_id)
    plan = get_manager().unarchive_plan(uuid)
    if not plan:
        print_error("Plan not found")
        raise typer.Exit(1)

    print_success(f"Restored: {plan.name}")


@plan_app.command("audit")
def plan_audit(
    plan_id: str = typer.Argument(..., help="Plan ID"),
) -> None:
    """List the planned pages abandoned by missed days."""
    uuid = parse_plan_id(plan_id)
    manager = get_manager()

    audits = manager.get_missed_allocations(uuid)
    if not audits:
        console.print("[dim]No missed allocations recorded.[/dim]")
        return

    table = Table(title="Missed Allocations")
    table.add_column("Date")
    table.add_column("Lost Pages", justify="right", style="red")
    table.add_column("Version", justify="right", style="dim")
    for audit in audits:
        table.add_row(str(audit.date), str(audit.lost_pages), str(audit.plan_version))

    console.print(table)
    console.print(f"Total: {sum(a.lost_pages for a in audits):,} pages")


@plan_app.command("delete")
def plan_delete(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a reading plan."""
    uuid = parse_plan_id(plan_id)
    manager = get_manager()

    if not yes and not typer.confirm("Delete this plan and all its days?"):
        raise typer.Exit(0)

    if manager.delete_plan(uuid):
        print_success("Plan deleted")
    else:
        print_error("Plan not found")
        raise typer.Exit(1)


# ============================================================================
# Utility Commands
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"pagepace version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
