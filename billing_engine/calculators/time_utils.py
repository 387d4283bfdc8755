"""Time and money utilities for the billing engine.

This module provides the pure arithmetic the rest of the engine relies on:
- Rounding elapsed timer durations up to 6-minute (0.1 hour) slices
- Rounding money to cents
- Invoice due dates and fiscal (tax) year boundaries
- Invoice number formatting and note aggregation for line descriptions

Calendar-day logic is always evaluated in an explicit timezone; nothing here
reads the process clock or global configuration.
"""

import datetime as dt
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")

# Minutes per billable slice (0.1 hour)
SLICE_MINUTES = 6

# Fiscal year starts 1 April and ends 31 March
TAX_YEAR_START_MONTH = 4

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range.

    Attributes:
        start: First day of the range
        end: Last day of the range
    """

    start: dt.date
    end: dt.date

    def __contains__(self, day: dt.date) -> bool:
        return self.start <= day <= self.end


def round_duration_up(start: dt.datetime, end: dt.datetime) -> Decimal:
    """Round an elapsed interval up to the next 0.1 hour.

    Elapsed time, down to the microsecond, is first rounded up to whole minutes, then the
    minutes are rounded up to the next multiple of 6.

    Args:
        start: Interval start (timezone-aware)
        end: Interval end (timezone-aware), must be after start

    Returns:
        Hours as a Decimal with one decimal place

    Raises:
        ValueError: If end is not after start

    Example:
        >>> start = dt.datetime(2025, 10, 27, 9, 0, tzinfo=dt.timezone.utc)
        >>> round_duration_up(start, start + dt.timedelta(minutes=47))
        Decimal('0.8')
        >>> round_duration_up(start, start + dt.timedelta(hours=1))
        Decimal('1.0')
    """
    if end <= start:
        raise ValueError(f"end ({end.isoformat()}) must be after start ({start.isoformat()})")

    minutes = math.ceil((end - start) / dt.timedelta(minutes=1))
    tenths = math.ceil(minutes / SLICE_MINUTES)
    return (Decimal(tenths) / Decimal(10)).quantize(TENTHS)


def round_money(value: Number) -> Decimal:
    """Round a monetary value to cents using half-up rounding.

    Example:
        >>> round_money(Decimal("10.005"))
        Decimal('10.01')
        >>> round_money(2.675)
        Decimal('2.68')
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def line_amount(quantity: Number, unit_price: Number) -> Decimal:
    """Amount of an invoice line: quantity × unit price, rounded to cents."""
    return round_money(Decimal(str(quantity)) * Decimal(str(unit_price)))


def sum_money(values: Iterable[Number]) -> Decimal:
    """Sum monetary values and round the result to cents."""
    return round_money(sum((Decimal(str(v)) for v in values), Decimal("0")))


def local_date(timestamp: dt.datetime, tz: ZoneInfo) -> dt.date:
    """Calendar date of a timestamp in the given timezone.

    Naive timestamps are interpreted as UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt.timezone.utc)
    return timestamp.astimezone(tz).date()


def start_of_next_day_utc(day: dt.date, tz: ZoneInfo) -> dt.datetime:
    """UTC instant of local midnight at the end of ``day``.

    Used as an exclusive upper bound so that "started on or before ``day``"
    can be evaluated directly against stored UTC timestamps.
    """
    local_midnight = dt.datetime.combine(day + dt.timedelta(days=1), dt.time(0, 0), tz)
    return local_midnight.astimezone(dt.timezone.utc)


def calculate_due_date(
    invoice_date: dt.date, due_day: int = 20
) -> dt.date:
    """Due date for an invoice: the given day of the following month.

    Example:
        >>> calculate_due_date(dt.date(2025, 10, 28))
        datetime.date(2025, 11, 20)
        >>> calculate_due_date(dt.date(2025, 12, 31))
        datetime.date(2026, 1, 20)
    """
    if invoice_date.month == 12:
        return dt.date(invoice_date.year + 1, 1, due_day)
    return dt.date(invoice_date.year, invoice_date.month + 1, due_day)


def get_tax_year(now: dt.datetime, tz: ZoneInfo) -> DateRange:
    """Fiscal year (1 April to 31 March) containing ``now`` in ``tz``.

    Example:
        >>> tz = ZoneInfo("Pacific/Auckland")
        >>> get_tax_year(dt.datetime(2025, 3, 31, 12, tzinfo=tz), tz)
        DateRange(start=datetime.date(2024, 4, 1), end=datetime.date(2025, 3, 31))
    """
    today = local_date(now, tz)
    year = today.year if today.month >= TAX_YEAR_START_MONTH else today.year - 1
    return DateRange(
        start=dt.date(year, TAX_YEAR_START_MONTH, 1),
        end=dt.date(year + 1, TAX_YEAR_START_MONTH - 1, 31),
    )


def get_last_n_months(today: dt.date, n: int) -> DateRange:
    """Date range covering the last ``n`` calendar months including this one."""
    if n < 1:
        raise ValueError("n must be at least 1")

    month_index = today.year * 12 + (today.month - 1) - (n - 1)
    start = dt.date(month_index // 12, month_index % 12 + 1, 1)

    if today.month == 12:
        end = dt.date(today.year, 12, 31)
    else:
        end = dt.date(today.year, today.month + 1, 1) - dt.timedelta(days=1)
    return DateRange(start=start, end=end)


def calculate_days_overdue(due_date: dt.date, today: dt.date) -> int:
    """Whole days past the due date, never negative."""
    return max(0, (today - due_date).days)


def format_invoice_number(number: int, prefix: str = "INV-", width: int = 4) -> str:
    """Format a sequence number as an invoice number.

    Example:
        >>> format_invoice_number(7)
        'INV-0007'
        >>> format_invoice_number(12345)
        'INV-12345'
    """
    return f"{prefix}{number:0{width}d}"


def aggregate_unique_notes(notes: Iterable[Optional[str]]) -> str:
    """Join distinct notes, comparing case-insensitively.

    Blank notes are skipped and the first spelling of each note wins.

    Example:
        >>> aggregate_unique_notes(["Meeting", None, " meeting ", "Review"])
        'Meeting, Review'
    """
    unique = {}
    for note in notes:
        if note and note.strip():
            key = note.strip().lower()
            if key not in unique:
                unique[key] = note.strip()
    return ", ".join(unique.values())
