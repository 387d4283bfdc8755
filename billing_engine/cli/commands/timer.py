"""Timer commands."""

from typing import Optional

import click

from billing_engine.cli.context import get_engine, is_debug, parse_timestamp_input
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import format_info, format_success, format_table


@click.group(name="timer")
def timer_group():
    """Start, stop and inspect the running timer."""


@timer_group.command(name="start")
@click.argument("project_id", type=int)
@click.pass_context
def start_timer(ctx: click.Context, project_id: int):
    """Start a timer on a project. Only one timer may run at a time."""
    with with_error_handling(is_debug(ctx)):
        entry = get_engine(ctx).timer.start(project_id)
        click.echo(
            format_success(
                f"Timer {entry.id} started on project {project_id} at "
                f"{entry.start_at.isoformat()}"
            )
        )


@timer_group.command(name="stop")
@click.argument("project_id", type=int)
@click.option("--at", "stop_at", type=str, default=None, help="Stop time (ISO 8601 with offset)")
@click.option("--note", type=str, default=None, help="Note stored on the time entry")
@click.pass_context
def stop_timer(ctx: click.Context, project_id: int, stop_at: Optional[str], note: Optional[str]):
    """Stop the running timer of a project.

    Example:
        billing-engine timer stop 3 --note "Kickoff call"
    """
    client_stop_at = parse_timestamp_input(stop_at)
    with with_error_handling(is_debug(ctx)):
        entry = get_engine(ctx).timer.stop(project_id, client_stop_at=client_stop_at, note=note)
        click.echo(format_success(f"Timer {entry.id} stopped: {entry.total_hours}h"))


@timer_group.command(name="current")
@click.pass_context
def current_timer(ctx: click.Context):
    """Show the running timer, if any."""
    with with_error_handling(is_debug(ctx)):
        running = get_engine(ctx).timer.current_timer()
        if running is None:
            click.echo(format_info("No timer is running."))
            return
        click.echo(
            f"Timer {running.entry.id} running on {running.project.name} "
            f"({running.client.name}) since {running.entry.start_at.isoformat()}"
        )


@timer_group.command(name="add")
@click.argument("project_id", type=int)
@click.argument("start_at")
@click.argument("end_at")
@click.option("--note", type=str, default=None)
@click.pass_context
def add_entry(ctx: click.Context, project_id: int, start_at: str, end_at: str, note: Optional[str]):
    """Record a closed time entry.

    Example:
        billing-engine timer add 3 2025-10-27T09:00+13:00 2025-10-27T10:00+13:00
    """
    start = parse_timestamp_input(start_at)
    end = parse_timestamp_input(end_at)
    with with_error_handling(is_debug(ctx)):
        entry = get_engine(ctx).timer.add_manual_entry(
            project_id=project_id, start_at=start, end_at=end, note=note
        )
        click.echo(format_success(f"Recorded time entry {entry.id}: {entry.total_hours}h"))


@timer_group.command(name="edit")
@click.argument("entry_id", type=int)
@click.option("--project", "project_id", type=int, default=None, help="Move the entry to another project")
@click.option("--start", "start_at", type=str, default=None, help="New start (ISO 8601 with offset)")
@click.option("--end", "end_at", type=str, default=None, help="New end (ISO 8601 with offset)")
@click.option("--note", type=str, default=None)
@click.pass_context
def edit_entry(
    ctx: click.Context,
    entry_id: int,
    project_id: Optional[int],
    start_at: Optional[str],
    end_at: Optional[str],
    note: Optional[str],
):
    """Change a time entry's project, interval or note.

    Example:
        billing-engine timer edit 12 --end 2025-10-27T10:47+13:00
    """
    changes = {}
    if project_id is not None:
        changes["project_id"] = project_id
    if start_at is not None:
        changes["start_at"] = parse_timestamp_input(start_at)
    if end_at is not None:
        changes["end_at"] = parse_timestamp_input(end_at)
    if note is not None:
        changes["note"] = note
    with with_error_handling(is_debug(ctx)):
        entry = get_engine(ctx).timer.update_entry(entry_id, changes)
        click.echo(format_success(f"Updated time entry {entry.id}: {entry.total_hours}h"))


@timer_group.command(name="list")
@click.option("--project", "project_id", type=int, default=None)
@click.option("--uninvoiced", is_flag=True, help="Only entries not yet invoiced")
@click.pass_context
def list_entries(ctx: click.Context, project_id: Optional[int], uninvoiced: bool):
    """List time entries."""
    with with_error_handling(is_debug(ctx)):
        entries = get_engine(ctx).timer.list_entries(project_id, uninvoiced_only=uninvoiced)
        if not entries:
            click.echo(format_info("No time entries."))
            return
        rows = [
            [
                e.id,
                e.project_id,
                e.start_at.isoformat(),
                e.end_at.isoformat() if e.end_at else "running",
                e.total_hours,
                "yes" if e.is_invoiced else "no",
                e.note or "",
            ]
            for e in entries
        ]
        click.echo(
            format_table(["ID", "Project", "Start", "End", "Hours", "Invoiced", "Note"], rows)
        )


@timer_group.command(name="delete")
@click.argument("entry_id", type=int)
@click.pass_context
def delete_entry(ctx: click.Context, entry_id: int):
    """Delete a time entry that has not been invoiced."""
    with with_error_handling(is_debug(ctx)):
        get_engine(ctx).timer.delete_entry(entry_id)
        click.echo(format_success(f"Deleted time entry {entry_id}"))
