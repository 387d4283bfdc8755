"""CLI utility functions."""

from billing_engine.cli.utils.formatters import (
    format_dataframe,
    format_error,
    format_info,
    format_invoice,
    format_money,
    format_success,
    format_summaries,
    format_table,
    format_warning,
)

__all__ = [
    "format_dataframe",
    "format_error",
    "format_info",
    "format_invoice",
    "format_money",
    "format_success",
    "format_summaries",
    "format_table",
    "format_warning",
]
