"""Billing report generator producing summary DataFrames.

Reports are computed from the store as pandas DataFrames so they can be
printed by the CLI, written to CSV by a caller, or asserted on in tests:
- Outstanding invoices with days overdue
- Invoiced totals per month
- Hours tracked per project per month
- Income received in the current tax year
"""

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import pandas as pd
from sqlalchemy import select

from billing_engine.calculators.clock import Clock
from billing_engine.calculators.time_utils import (
    calculate_days_overdue,
    get_last_n_months,
    get_tax_year,
    local_date,
    start_of_next_day_utc,
)
from billing_engine.models.enums import InvoiceStatus
from billing_engine.storage.database import Database
from billing_engine.storage.tables import ClientRow, InvoiceRow, ProjectRow, TimeEntryRow
from billing_engine.validators.lifecycle import OUTSTANDING_STATUSES

logger = logging.getLogger(__name__)

INVOICE_COLUMNS = [
    "Number",
    "Client",
    "Project",
    "Date Invoiced",
    "Due Date",
    "Status",
    "Total",
    "Date Paid",
]
OUTSTANDING_COLUMNS = [
    "Number",
    "Client",
    "Date Invoiced",
    "Due Date",
    "Status",
    "Total",
    "Days Overdue",
]
MONTHLY_INVOICED_COLUMNS = ["Month", "Invoices", "Total"]
MONTHLY_HOURS_COLUMNS = ["Month", "Project", "Hours"]
INCOME_COLUMNS = ["Number", "Client", "Date Paid", "Total"]


def _month_key(day: dt.date) -> str:
    return f"{day.year}-{day.month:02d}"


@dataclass
class BillingReports:
    """Container for report DataFrames.

    Attributes:
        outstanding: Unpaid and sent invoices, most overdue first
        invoiced_by_month: Invoice count and total per month
        hours_by_month: Hours per project per month
        tax_year_income: Paid invoices of the current tax year
    """

    outstanding: pd.DataFrame
    invoiced_by_month: pd.DataFrame
    hours_by_month: pd.DataFrame
    tax_year_income: pd.DataFrame

    @property
    def outstanding_total(self) -> Decimal:
        return sum(self.outstanding["Total"], Decimal("0.00"))

    @property
    def tax_year_income_total(self) -> Decimal:
        return sum(self.tax_year_income["Total"], Decimal("0.00"))


class ReportGenerator:
    """Generate billing reports as pre-computed pandas DataFrames.

    Example:
        >>> reports = ReportGenerator(db, clock).generate(months=6)
        >>> reports.outstanding[["Number", "Days Overdue"]]
    """

    def __init__(self, db: Database, clock: Clock):
        self.db = db
        self.clock = clock

    def invoices_frame(self) -> pd.DataFrame:
        """All invoices joined with client and primary project names."""
        stmt = (
            select(InvoiceRow, ClientRow.name, ProjectRow.name)
            .join(ClientRow, InvoiceRow.client_id == ClientRow.id)
            .join(ProjectRow, InvoiceRow.project_id == ProjectRow.id)
            .order_by(InvoiceRow.date_invoiced, InvoiceRow.id)
        )
        with self.db.transaction() as session:
            records = [
                {
                    "Number": invoice.number,
                    "Client": client_name,
                    "Project": project_name,
                    "Date Invoiced": invoice.date_invoiced,
                    "Due Date": invoice.due_date,
                    "Status": invoice.status.value,
                    "Total": invoice.total,
                    "Date Paid": invoice.date_paid,
                }
                for invoice, client_name, project_name in session.execute(stmt)
            ]
        return pd.DataFrame(records, columns=INVOICE_COLUMNS)

    def outstanding_invoices(
        self, invoices: Optional[pd.DataFrame] = None, today: Optional[dt.date] = None
    ) -> pd.DataFrame:
        """Invoices awaiting payment with the number of days they are overdue."""
        df = self.invoices_frame() if invoices is None else invoices
        today = today or self.clock.today()
        outstanding_values = [status.value for status in OUTSTANDING_STATUSES]
        df = df[df["Status"].isin(outstanding_values)].copy()

        if len(df) == 0:
            return pd.DataFrame(columns=OUTSTANDING_COLUMNS)

        df["Days Overdue"] = df["Due Date"].apply(
            lambda due: calculate_days_overdue(due, today)
        )
        df = df.sort_values(["Days Overdue", "Due Date"], ascending=[False, True])
        return df[OUTSTANDING_COLUMNS].reset_index(drop=True)

    def invoiced_by_month(
        self, invoices: Optional[pd.DataFrame] = None, months: int = 12
    ) -> pd.DataFrame:
        """Invoice count and total per month over the last ``months`` months.

        Months without invoices are included with zero totals.
        """
        df = self.invoices_frame() if invoices is None else invoices
        window = get_last_n_months(self.clock.today(), months)
        all_months = [
            _month_key(day)
            for day in pd.date_range(window.start, window.end, freq="MS").date
        ]

        df = df[df["Date Invoiced"].apply(lambda day: day in window).astype(bool)].copy()
        if len(df) == 0:
            totals = pd.DataFrame(columns=MONTHLY_INVOICED_COLUMNS)
        else:
            df["Month"] = df["Date Invoiced"].apply(_month_key)
            totals = df.groupby("Month", as_index=False).agg(
                Invoices=("Number", "count"),
                Total=("Total", lambda values: sum(values, Decimal("0.00"))),
            )

        result = pd.DataFrame({"Month": all_months}).merge(totals, on="Month", how="left")
        result["Invoices"] = result["Invoices"].fillna(0).astype(int)
        result["Total"] = result["Total"].apply(
            lambda value: value if isinstance(value, Decimal) else Decimal("0.00")
        )
        return result[MONTHLY_INVOICED_COLUMNS]

    def hours_by_month(self, months: int = 12) -> pd.DataFrame:
        """Closed hours per project per month, by local start date."""
        window = get_last_n_months(self.clock.today(), months)
        tz = self.clock.tz
        stmt = (
            select(TimeEntryRow.start_at, TimeEntryRow.total_hours, ProjectRow.name)
            .join(ProjectRow, TimeEntryRow.project_id == ProjectRow.id)
            .where(
                TimeEntryRow.end_at.is_not(None),
                TimeEntryRow.start_at >= start_of_next_day_utc(window.start - dt.timedelta(days=1), tz),
                TimeEntryRow.start_at < start_of_next_day_utc(window.end, tz),
            )
        )
        with self.db.transaction() as session:
            records = [
                {
                    "Month": _month_key(local_date(start_at, tz)),
                    "Project": project_name,
                    "Hours": hours,
                }
                for start_at, hours, project_name in session.execute(stmt)
            ]

        if not records:
            return pd.DataFrame(columns=MONTHLY_HOURS_COLUMNS)

        df = pd.DataFrame(records, columns=MONTHLY_HOURS_COLUMNS)
        grouped = df.groupby(["Month", "Project"], as_index=False).agg(
            Hours=("Hours", lambda values: sum(values, Decimal("0")))
        )
        return grouped.sort_values(["Month", "Project"]).reset_index(drop=True)

    def tax_year_income(
        self, invoices: Optional[pd.DataFrame] = None, now: Optional[dt.datetime] = None
    ) -> pd.DataFrame:
        """Paid invoices whose payment date falls in the current tax year."""
        df = self.invoices_frame() if invoices is None else invoices
        tax_year = get_tax_year(now or self.clock.now(), self.clock.tz)
        paid = df[df["Status"] == InvoiceStatus.PAID.value]
        paid = paid[
            paid["Date Paid"].apply(lambda day: day is not None and day in tax_year).astype(bool)
        ]
        if len(paid) == 0:
            return pd.DataFrame(columns=INCOME_COLUMNS)
        return paid.sort_values("Date Paid")[INCOME_COLUMNS].reset_index(drop=True)

    def generate(self, months: int = 12) -> BillingReports:
        """Generate all reports from a single read of the invoice table."""
        invoices = self.invoices_frame()
        reports = BillingReports(
            outstanding=self.outstanding_invoices(invoices),
            invoiced_by_month=self.invoiced_by_month(invoices, months),
            hours_by_month=self.hours_by_month(months),
            tax_year_income=self.tax_year_income(invoices),
        )
        logger.info(
            f"Generated reports: {len(reports.outstanding)} outstanding invoice(s), "
            f"tax year income {reports.tax_year_income_total}"
        )
        return reports
