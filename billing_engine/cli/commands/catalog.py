"""Client, project and expense commands."""

from typing import Optional

import click

from billing_engine.cli.context import get_engine, is_debug, parse_date_input
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import (
    format_info,
    format_money,
    format_success,
    format_table,
)


@click.group(name="client")
def client_group():
    """Manage clients."""


@client_group.command(name="add")
@click.argument("name")
@click.option("--rate", type=str, default="0", help="Default hourly rate for new projects")
@click.option("--email", type=str, default=None, help="Contact email")
@click.option("--invoice-email", type=str, default=None, help="Address invoices go to")
@click.option("--contact", type=str, default=None, help="Contact person")
@click.pass_context
def add_client(
    ctx: click.Context,
    name: str,
    rate: str,
    email: Optional[str],
    invoice_email: Optional[str],
    contact: Optional[str],
):
    """Create a client.

    Example:
        billing-engine client add "Acme Corp" --rate 120
    """
    with with_error_handling(is_debug(ctx)):
        client = get_engine(ctx).catalog.create_client(
            name=name,
            default_hourly_rate=rate,
            email=email,
            invoice_email=invoice_email,
            contact_person=contact,
        )
        click.echo(format_success(f"Created client {client.id}: {client.name}"))


@client_group.command(name="list")
@click.pass_context
def list_clients(ctx: click.Context):
    """List clients."""
    with with_error_handling(is_debug(ctx)):
        clients = get_engine(ctx).catalog.list_clients()
        if not clients:
            click.echo(format_info("No clients yet."))
            return
        rows = [
            [c.id, c.name, format_money(c.default_hourly_rate), c.email or ""]
            for c in clients
        ]
        click.echo(format_table(["ID", "Name", "Default rate", "Email"], rows))


@client_group.command(name="delete")
@click.argument("client_id", type=int)
@click.pass_context
def delete_client(ctx: click.Context, client_id: int):
    """Delete a client without projects."""
    with with_error_handling(is_debug(ctx)):
        get_engine(ctx).catalog.delete_client(client_id)
        click.echo(format_success(f"Deleted client {client_id}"))


@click.group(name="project")
def project_group():
    """Manage projects."""


@project_group.command(name="add")
@click.argument("client_id", type=int)
@click.argument("name")
@click.option("--rate", type=str, default=None, help="Hourly rate (defaults to the client rate)")
@click.option("--notes", type=str, default=None)
@click.pass_context
def add_project(
    ctx: click.Context, client_id: int, name: str, rate: Optional[str], notes: Optional[str]
):
    """Create a project for a client.

    Example:
        billing-engine project add 1 "Website" --rate 100
    """
    with with_error_handling(is_debug(ctx)):
        catalog = get_engine(ctx).catalog
        if rate is None:
            rate = catalog.get_client(client_id).default_hourly_rate
        project = catalog.create_project(
            client_id=client_id, name=name, hourly_rate=rate, notes=notes
        )
        click.echo(
            format_success(
                f"Created project {project.id}: {project.name} at "
                f"{format_money(project.hourly_rate)}/h"
            )
        )


@project_group.command(name="list")
@click.option("--client", "client_id", type=int, default=None, help="Only this client's projects")
@click.pass_context
def list_projects(ctx: click.Context, client_id: Optional[int]):
    """List projects."""
    with with_error_handling(is_debug(ctx)):
        projects = get_engine(ctx).catalog.list_projects(client_id=client_id)
        if not projects:
            click.echo(format_info("No projects yet."))
            return
        rows = [
            [p.id, p.client_id, p.name, format_money(p.hourly_rate), "yes" if p.active else "no"]
            for p in projects
        ]
        click.echo(format_table(["ID", "Client", "Name", "Rate", "Active"], rows))


@project_group.command(name="set-rate")
@click.argument("project_id", type=int)
@click.argument("rate", type=str)
@click.pass_context
def set_project_rate(ctx: click.Context, project_id: int, rate: str):
    """Change a project's hourly rate for work not yet invoiced."""
    with with_error_handling(is_debug(ctx)):
        project = get_engine(ctx).catalog.update_project(project_id, hourly_rate=rate)
        click.echo(
            format_success(f"Project {project.id} rate is now {format_money(project.hourly_rate)}/h")
        )


@project_group.command(name="delete")
@click.argument("project_id", type=int)
@click.pass_context
def delete_project(ctx: click.Context, project_id: int):
    """Delete a project without time entries or expenses."""
    with with_error_handling(is_debug(ctx)):
        get_engine(ctx).catalog.delete_project(project_id)
        click.echo(format_success(f"Deleted project {project_id}"))


@click.group(name="expense")
def expense_group():
    """Manage expenses."""


@expense_group.command(name="add")
@click.argument("project_id", type=int)
@click.argument("amount", type=str)
@click.option("--date", "expense_date", type=str, default=None, help="Expense date (YYYY-MM-DD, default today)")
@click.option("--description", type=str, default=None)
@click.option("--non-billable", is_flag=True, help="Do not pass the expense on to the client")
@click.pass_context
def add_expense(
    ctx: click.Context,
    project_id: int,
    amount: str,
    expense_date: Optional[str],
    description: Optional[str],
    non_billable: bool,
):
    """Record an expense on a project.

    Example:
        billing-engine expense add 3 49.90 --description "Domain renewal"
    """
    day = parse_date_input(expense_date)
    with with_error_handling(is_debug(ctx)):
        engine = get_engine(ctx)
        expense = engine.catalog.create_expense(
            project_id=project_id,
            amount=amount,
            expense_date=day or engine.clock.today(),
            description=description,
            is_billable=not non_billable,
        )
        click.echo(
            format_success(
                f"Recorded expense {expense.id}: {format_money(expense.amount)} "
                f"on {expense.expense_date.isoformat()}"
            )
        )


@expense_group.command(name="edit")
@click.argument("expense_id", type=int)
@click.option("--project", "project_id", type=int, default=None, help="Move the expense to another project")
@click.option("--amount", type=str, default=None)
@click.option("--date", "expense_date", type=str, default=None, help="Expense date (YYYY-MM-DD)")
@click.option("--description", type=str, default=None)
@click.option("--billable/--non-billable", "is_billable", default=None, help="Pass the expense on to the client")
@click.pass_context
def edit_expense(
    ctx: click.Context,
    expense_id: int,
    project_id: Optional[int],
    amount: Optional[str],
    expense_date: Optional[str],
    description: Optional[str],
    is_billable: Optional[bool],
):
    """Change an expense. Invoiced expenses only accept a new description."""
    changes = {}
    if project_id is not None:
        changes["project_id"] = project_id
    if amount is not None:
        changes["amount"] = amount
    if expense_date is not None:
        changes["expense_date"] = parse_date_input(expense_date)
    if description is not None:
        changes["description"] = description
    if is_billable is not None:
        changes["is_billable"] = is_billable
    with with_error_handling(is_debug(ctx)):
        expense = get_engine(ctx).catalog.update_expense(expense_id, changes)
        click.echo(
            format_success(
                f"Updated expense {expense.id}: {format_money(expense.amount)} "
                f"on {expense.expense_date.isoformat()}"
            )
        )


@expense_group.command(name="delete")
@click.argument("expense_id", type=int)
@click.pass_context
def delete_expense(ctx: click.Context, expense_id: int):
    """Delete an expense that has not been invoiced."""
    with with_error_handling(is_debug(ctx)):
        get_engine(ctx).catalog.delete_expense(expense_id)
        click.echo(format_success(f"Deleted expense {expense_id}"))
