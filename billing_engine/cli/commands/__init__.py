"""CLI commands."""

from billing_engine.cli.commands.catalog import client_group, expense_group, project_group
from billing_engine.cli.commands.invoice import invoice_group, show_ledger
from billing_engine.cli.commands.report import generate_report
from billing_engine.cli.commands.setup import init_db
from billing_engine.cli.commands.timer import timer_group

__all__ = [
    "client_group",
    "expense_group",
    "generate_report",
    "init_db",
    "invoice_group",
    "project_group",
    "show_ledger",
    "timer_group",
]
