"""Report command."""

import os
from typing import Optional

import click

from billing_engine.cli.context import get_engine, is_debug
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.formatters import (
    format_dataframe,
    format_info,
    format_money,
    format_success,
)


@click.command(name="report")
@click.option(
    "--months",
    type=click.IntRange(min=1, max=120),
    default=12,
    show_default=True,
    help="Months covered by the monthly reports",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, writable=True),
    default=None,
    help="Also write each report as CSV into this directory",
)
@click.pass_context
def generate_report(ctx: click.Context, months: int, output_dir: Optional[str]):
    """Print outstanding invoices, monthly totals and tax year income.

    Example:
        billing-engine report --months 6
        billing-engine report --output-dir ./reports
    """
    with with_error_handling(is_debug(ctx)):
        reports = get_engine(ctx).reports.generate(months=months)

        sections = [
            ("Outstanding invoices", reports.outstanding),
            ("Invoiced by month", reports.invoiced_by_month),
            ("Hours by month", reports.hours_by_month),
            ("Tax year income", reports.tax_year_income),
        ]
        for title, frame in sections:
            click.echo()
            click.echo(click.style(title, bold=True))
            if len(frame) == 0:
                click.echo(format_info("Nothing to report."))
            else:
                click.echo(format_dataframe(frame))

        click.echo()
        click.echo(f"Outstanding total: {format_money(reports.outstanding_total)}")
        click.echo(f"Tax year income:   {format_money(reports.tax_year_income_total)}")

        if output_dir:
            written = _write_csv(reports, output_dir)
            click.echo(format_success(f"Wrote {len(written)} CSV file(s) to {output_dir}"))


def _write_csv(reports, output_dir: str):
    os.makedirs(output_dir, exist_ok=True)
    frames = {
        "outstanding.csv": reports.outstanding,
        "invoiced_by_month.csv": reports.invoiced_by_month,
        "hours_by_month.csv": reports.hours_by_month,
        "tax_year_income.csv": reports.tax_year_income,
    }
    written = []
    for name, frame in frames.items():
        path = os.path.join(output_dir, name)
        frame.to_csv(path, index=False)
        written.append(path)
    return written
