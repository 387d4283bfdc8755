"""Calculator modules for the billing engine."""

from billing_engine.calculators.clock import Clock, FixedClock, SystemClock
from billing_engine.calculators.time_utils import (
    DateRange,
    aggregate_unique_notes,
    calculate_days_overdue,
    calculate_due_date,
    format_invoice_number,
    get_last_n_months,
    get_tax_year,
    line_amount,
    local_date,
    round_duration_up,
    round_money,
    sum_money,
)

__all__ = [
    # clock
    "Clock",
    "FixedClock",
    "SystemClock",
    # time_utils
    "DateRange",
    "aggregate_unique_notes",
    "calculate_days_overdue",
    "calculate_due_date",
    "format_invoice_number",
    "get_last_n_months",
    "get_tax_year",
    "line_amount",
    "local_date",
    "round_duration_up",
    "round_money",
    "sum_money",
]
