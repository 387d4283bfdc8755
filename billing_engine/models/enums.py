"""Enumerations shared by storage, models and services."""

from enum import Enum


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""

    DRAFT = "Draft"
    UNPAID = "Unpaid"
    SENT = "Sent"
    PAID = "Paid"


class LineItemType(str, Enum):
    """Origin of an invoice line item."""

    TIME = "time"
    EXPENSE = "expense"
    MANUAL = "manual"
