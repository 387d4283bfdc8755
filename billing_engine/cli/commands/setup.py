"""Database setup command."""

from typing import Optional

import click

from billing_engine.cli.context import get_engine, is_debug
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import format_success


@click.command(name="init-db")
@click.option("--company", "company_name", type=str, default=None, help="Company name shown on invoices")
@click.pass_context
def init_db(ctx: click.Context, company_name: Optional[str]):
    """Create the billing tables and settings if they do not exist.

    Running it again on an existing database changes nothing.

    Example:
        billing-engine init-db --company "Harren Consulting"
    """
    with with_error_handling(is_debug(ctx)):
        engine = get_engine(ctx)
        engine.init_db(company_name=company_name)
        click.echo(
            format_success(
                f"Database ready; next invoice number is {engine.next_invoice_number()}"
            )
        )
