"""Invoice commands: ledger preview, building and editing invoices."""

from typing import Optional, Tuple

import click

from billing_engine.cli.context import get_engine, is_debug, parse_date_input
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import (
    format_info,
    format_invoice,
    format_money,
    format_success,
    format_summaries,
    format_table,
)
from billing_engine.models.enums import InvoiceStatus, LineItemType

STATUS_CHOICES = [status.value for status in InvoiceStatus]


@click.command(name="ledger")
@click.option("--client", "client_id", type=int, default=None, help="All projects of a client")
@click.option("--project", "project_ids", type=int, multiple=True, help="Project ID (repeatable)")
@click.option("--up-to", "up_to", type=str, default=None, help="Inclusive cutoff (YYYY-MM-DD, default today)")
@click.pass_context
def show_ledger(
    ctx: click.Context, client_id: Optional[int], project_ids: Tuple[int, ...], up_to: Optional[str]
):
    """Show what would be billed, per project.

    Example:
        billing-engine ledger --client 1 --up-to 2025-10-27
    """
    up_to_date = parse_date_input(up_to)
    with with_error_handling(is_debug(ctx)):
        ledger = get_engine(ctx).ledger
        if client_id is not None:
            summaries = ledger.summarize_client(client_id, up_to_date, list(project_ids) or None)
        else:
            summaries = ledger.summarize(list(project_ids), up_to_date)
        if not summaries:
            click.echo(format_info("Nothing to bill."))
            return
        click.echo(format_summaries(summaries))


@click.group(name="invoice")
def invoice_group():
    """Build, inspect and edit invoices."""


@invoice_group.command(name="build")
@click.option("--client", "client_id", type=int, default=None, help="Bill a client's projects")
@click.option("--project", "project_ids", type=int, multiple=True, help="Project ID (repeatable)")
@click.option("--date", "date_invoiced", type=str, default=None, help="Invoice date (YYYY-MM-DD, default today)")
@click.option("--up-to", "up_to", type=str, default=None, help="Inclusive cutoff (YYYY-MM-DD, default today)")
@click.option("--group-by-day", is_flag=True, help="One time line per project and local day")
@click.option("--no-entry-notes", is_flag=True, help="Leave time entry notes out of line descriptions")
@click.option("--notes", type=str, default=None, help="Invoice notes")
@click.pass_context
def build_invoice(
    ctx: click.Context,
    client_id: Optional[int],
    project_ids: Tuple[int, ...],
    date_invoiced: Optional[str],
    up_to: Optional[str],
    group_by_day: bool,
    no_entry_notes: bool,
    notes: Optional[str],
):
    """Create an invoice from uninvoiced time and expenses.

    Example:
        billing-engine invoice build --client 1 --project 1 --project 2 --up-to 2025-10-27
    """
    invoice_day = parse_date_input(date_invoiced)
    up_to_date = parse_date_input(up_to)
    with with_error_handling(is_debug(ctx)):
        scope = {"client_id": client_id, "project_ids": list(project_ids)}
        built = get_engine(ctx).builder.build(
            scope,
            date_invoiced=invoice_day,
            up_to_date=up_to_date,
            group_by_day=group_by_day,
            notes=notes,
            include_notes=not no_entry_notes,
        )
        click.echo(format_success(f"Created invoice {built.invoice.number} (ID {built.invoice.id})"))
        click.echo(format_invoice(built))


@invoice_group.command(name="show")
@click.argument("invoice_id", type=int)
@click.pass_context
def show_invoice(ctx: click.Context, invoice_id: int):
    """Show an invoice with its lines."""
    with with_error_handling(is_debug(ctx)):
        click.echo(format_invoice(get_engine(ctx).invoices.get_invoice(invoice_id)))


@invoice_group.command(name="list")
@click.option("--status", type=click.Choice(STATUS_CHOICES, case_sensitive=False), default=None)
@click.option("--client", "client_id", type=int, default=None)
@click.pass_context
def list_invoices(ctx: click.Context, status: Optional[str], client_id: Optional[int]):
    """List invoices, newest first."""
    with with_error_handling(is_debug(ctx)):
        invoices = get_engine(ctx).invoices.list_invoices(status=status, client_id=client_id)
        if not invoices:
            click.echo(format_info("No invoices found."))
            return
        rows = [
            [
                inv.id,
                inv.number,
                inv.client_id,
                inv.date_invoiced.isoformat(),
                inv.due_date.isoformat(),
                inv.status.value,
                format_money(inv.total),
            ]
            for inv in invoices
        ]
        click.echo(
            format_table(["ID", "Number", "Client", "Invoiced", "Due", "Status", "Total"], rows)
        )


@invoice_group.command(name="edit")
@click.argument("invoice_id", type=int)
@click.option("--date", "date_invoiced", type=str, default=None, help="New invoice date (YYYY-MM-DD)")
@click.option("--due", "due_date", type=str, default=None, help="New due date (YYYY-MM-DD)")
@click.option("--notes", type=str, default=None)
@click.pass_context
def edit_invoice(
    ctx: click.Context,
    invoice_id: int,
    date_invoiced: Optional[str],
    due_date: Optional[str],
    notes: Optional[str],
):
    """Change an invoice's dates or notes."""
    changes = {}
    if date_invoiced is not None:
        changes["date_invoiced"] = parse_date_input(date_invoiced)
    if due_date is not None:
        changes["due_date"] = parse_date_input(due_date)
    if notes is not None:
        changes["notes"] = notes
    with with_error_handling(is_debug(ctx)):
        invoice = get_engine(ctx).invoices.update_invoice(invoice_id, changes)
        click.echo(
            format_success(
                f"Updated invoice {invoice.number}: invoiced {invoice.date_invoiced.isoformat()}, "
                f"due {invoice.due_date.isoformat()}"
            )
        )


@invoice_group.command(name="add-line")
@click.argument("invoice_id", type=int)
@click.argument("description")
@click.argument("unit_price", type=str)
@click.option("--quantity", type=str, default="1")
@click.option(
    "--type",
    "line_type",
    type=click.Choice([t.value for t in LineItemType], case_sensitive=False),
    default=LineItemType.MANUAL.value,
)
@click.pass_context
def add_line(
    ctx: click.Context,
    invoice_id: int,
    description: str,
    unit_price: str,
    quantity: str,
    line_type: str,
):
    """Add a line to an unpaid invoice.

    Example:
        billing-engine invoice add-line 1 "Discount" -- -50
    """
    with with_error_handling(is_debug(ctx)):
        engine = get_engine(ctx)
        line = engine.lines.add_line(
            invoice_id,
            type=line_type.lower(),
            description=description,
            quantity=quantity,
            unit_price=unit_price,
        )
        total = engine.invoices.get_invoice(invoice_id).invoice.total
        click.echo(format_success(f"Added line {line.id}; invoice total {format_money(total)}"))


@invoice_group.command(name="update-line")
@click.argument("line_id", type=int)
@click.option("--description", type=str, default=None)
@click.option("--quantity", type=str, default=None)
@click.option("--unit-price", type=str, default=None)
@click.pass_context
def update_line(
    ctx: click.Context,
    line_id: int,
    description: Optional[str],
    quantity: Optional[str],
    unit_price: Optional[str],
):
    """Change a line's description, quantity or unit price."""
    changes = {
        key: value
        for key, value in (
            ("description", description),
            ("quantity", quantity),
            ("unit_price", unit_price),
        )
        if value is not None
    }
    with with_error_handling(is_debug(ctx)):
        line = get_engine(ctx).lines.update_line(line_id, changes)
        click.echo(
            format_success(f"Updated line {line.id}: amount {format_money(line.amount)}")
        )


@invoice_group.command(name="delete-line")
@click.argument("line_id", type=int)
@click.pass_context
def delete_line(ctx: click.Context, line_id: int):
    """Remove a line from an unpaid invoice."""
    with with_error_handling(is_debug(ctx)):
        get_engine(ctx).lines.delete_line(line_id)
        click.echo(format_success(f"Deleted line {line_id}"))


@invoice_group.command(name="set-status")
@click.argument("invoice_id", type=int)
@click.argument("status", type=click.Choice(STATUS_CHOICES, case_sensitive=False))
@click.option("--paid-on", "paid_on", type=str, default=None, help="Payment date (YYYY-MM-DD)")
@click.pass_context
def set_status(ctx: click.Context, invoice_id: int, status: str, paid_on: Optional[str]):
    """Move an invoice to Draft, Unpaid, Sent or Paid."""
    date_paid = parse_date_input(paid_on)
    with with_error_handling(is_debug(ctx)):
        invoice = get_engine(ctx).invoices.set_status(invoice_id, status, date_paid=date_paid)
        click.echo(format_success(f"Invoice {invoice.number} is now {invoice.status.value}"))


@invoice_group.command(name="delete")
@click.argument("invoice_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_invoice(ctx: click.Context, invoice_id: int, yes: bool):
    """Delete an invoice that has not been paid.

    Its time entries and expenses stay marked as invoiced.
    """
    if not yes:
        click.confirm(f"Delete invoice {invoice_id}?", abort=True)
    with with_error_handling(is_debug(ctx)):
        get_engine(ctx).invoices.delete(invoice_id)
        click.echo(format_success(f"Deleted invoice {invoice_id}"))


@invoice_group.command(name="next-number")
@click.option("--set", "set_to", type=int, default=None, help="Set the next sequence value")
@click.pass_context
def next_number(ctx: click.Context, set_to: Optional[int]):
    """Show or change the next invoice number."""
    with with_error_handling(is_debug(ctx)):
        engine = get_engine(ctx)
        if set_to is not None:
            engine.set_next_invoice_number(set_to)
        click.echo(f"Next invoice number: {engine.next_invoice_number()}")
