"""Billing Engine CLI.

This module provides a command-line interface for the billing engine.
It includes commands for tracking time, managing clients and projects,
building and editing invoices, and printing reports.
"""

from typing import Optional

import click

from billing_engine import __version__
from billing_engine.cli.commands.catalog import client_group, expense_group, project_group
from billing_engine.cli.commands.invoice import invoice_group, show_ledger
from billing_engine.cli.commands.report import generate_report
from billing_engine.cli.commands.setup import init_db
from billing_engine.cli.commands.timer import timer_group


@click.group(help="Billing Engine CLI - Track time and expenses and turn them into invoices")
@click.version_option(version=__version__)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Load settings from this .env file",
)
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
@click.pass_context
def cli(ctx: click.Context, env_file: Optional[str], debug: bool):
    """Billing Engine CLI main entry point."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("env_file", env_file)
    ctx.obj["debug"] = debug or ctx.obj.get("debug", False)


# Register commands
cli.add_command(init_db)
cli.add_command(client_group)
cli.add_command(project_group)
cli.add_command(expense_group)
cli.add_command(timer_group)
cli.add_command(show_ledger)
cli.add_command(invoice_group)
cli.add_command(generate_report)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
