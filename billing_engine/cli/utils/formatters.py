"""Output formatting utilities for CLI."""

from decimal import Decimal
from typing import Any, List

import click
import pandas as pd

from billing_engine.models.invoice import BuiltInvoice, ProjectSummary


def format_success(message: str) -> str:
    """Format a success message with green color.

    Args:
        message: The success message to format

    Returns:
        Formatted success message with color
    """
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    """Format an error message with red color.

    Args:
        message: The error message to format

    Returns:
        Formatted error message with color
    """
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    """Format a warning message with yellow color.

    Args:
        message: The warning message to format

    Returns:
        Formatted warning message with color
    """
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    """Format an info message with blue color.

    Args:
        message: The info message to format

    Returns:
        Formatted info message with color
    """
    return click.style(f"ℹ {message}", fg="blue")


def format_table(headers: List[str], rows: List[List[str]], max_width: int = 80) -> str:
    """Format data as a table.

    Args:
        headers: List of column headers
        rows: List of data rows (each row is a list of cell values)
        max_width: Maximum width for each column (default: 80)

    Returns:
        Formatted table as a string
    """
    if not headers:
        return ""

    # Calculate column widths
    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(col_widths):
                col_widths[i] = max(col_widths[i], len(str(cell)))

    # Limit column widths to max_width
    col_widths = [min(w, max_width) for w in col_widths]

    # Create separator line
    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"

    # Format header row
    header_row = (
        "|"
        + "|".join(
            f" {h:<{col_widths[i]}} "
            for i, h in enumerate(headers)
            if i < len(col_widths)
        )
        + "|"
    )

    # Format data rows
    data_rows = []
    for row in rows:
        formatted_cells = []
        for i, cell in enumerate(row):
            if i < len(col_widths):
                cell_str = str(cell)[: col_widths[i]]  # Truncate if needed
                formatted_cells.append(f" {cell_str:<{col_widths[i]}} ")
        data_rows.append("|" + "|".join(formatted_cells) + "|")

    # Assemble table
    table_lines = [separator, header_row, separator]
    if rows:
        table_lines.extend(data_rows)
        table_lines.append(separator)

    return "\n".join(table_lines)


def format_money(value: Any) -> str:
    """Format an amount with two decimals and thousands separators."""
    return f"{Decimal(str(value)):,.2f}"


def format_invoice(built: BuiltInvoice) -> str:
    """Format an invoice header and its lines for display.

    Args:
        built: Invoice with its line items

    Returns:
        Multi-line string with header fields and a line item table
    """
    invoice = built.invoice
    header = [
        f"Invoice {invoice.number} ({invoice.status.value})",
        f"  Date invoiced: {invoice.date_invoiced.isoformat()}",
        f"  Due date:      {invoice.due_date.isoformat()}",
    ]
    if invoice.date_sent:
        header.append(f"  Date sent:     {invoice.date_sent.isoformat()}")
    if invoice.date_paid:
        header.append(f"  Date paid:     {invoice.date_paid.isoformat()}")
    if invoice.notes:
        header.append(f"  Notes:         {invoice.notes}")

    rows = [
        [
            line.id,
            line.type.value,
            line.description,
            line.quantity,
            format_money(line.unit_price),
            format_money(line.amount),
        ]
        for line in built.line_items
    ]
    table = format_table(["ID", "Type", "Description", "Qty", "Unit price", "Amount"], rows)
    footer = f"Total: {format_money(invoice.total)}"
    return "\n".join(header + ["", table, footer])


def format_summaries(summaries: List[ProjectSummary]) -> str:
    """Format uninvoiced project summaries as a table with a total row."""
    rows = [
        [
            summary.project_id,
            summary.project_name,
            summary.uninvoiced_hours,
            format_money(summary.hourly_rate),
            format_money(summary.time_amount),
            format_money(summary.expense_amount),
            format_money(summary.total_amount),
        ]
        for summary in summaries
    ]
    grand_total = sum((summary.total_amount for summary in summaries), Decimal("0.00"))
    rows.append(["", "Total", "", "", "", "", format_money(grand_total)])
    return format_table(
        ["ID", "Project", "Hours", "Rate", "Time", "Expenses", "Total"], rows
    )


def format_dataframe(df: pd.DataFrame) -> str:
    """Format a report DataFrame with ``format_table``."""
    rows = [["" if value is None else value for value in row] for row in df.itertuples(index=False)]
    return format_table([str(column) for column in df.columns], rows)
