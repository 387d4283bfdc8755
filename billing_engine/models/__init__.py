"""Data models for the billing engine.

This package contains Pydantic models for all business entities:
- BaseDataModel: Base class with common configuration
- Client, Project: Billing parties and their rates
- TimeEntry, RunningTimer: Tracked work intervals
- Expense: Project expenses
- Invoice, InvoiceLineItem: Invoices and their lines
- ProjectSummary: Uninvoiced totals per project
"""

from billing_engine.models.base import BaseDataModel
from billing_engine.models.enums import InvoiceStatus, LineItemType
from billing_engine.models.invoice import (
    BuildInvoiceRequest,
    BuiltInvoice,
    Invoice,
    InvoiceLineItem,
    InvoiceScope,
    InvoiceUpdate,
    LineItemCreate,
    LineItemUpdate,
    ProjectSummary,
)
from billing_engine.models.project import (
    Client,
    ClientCreate,
    ClientUpdate,
    Project,
    ProjectCreate,
    ProjectUpdate,
)
from billing_engine.models.time_entry import (
    Expense,
    ExpenseCreate,
    ExpenseUpdate,
    ManualTimeEntryCreate,
    RunningTimer,
    StopTimerRequest,
    TimeEntry,
    TimeEntryUpdate,
)

__all__ = [
    "BaseDataModel",
    "BuildInvoiceRequest",
    "BuiltInvoice",
    "Client",
    "ClientCreate",
    "ClientUpdate",
    "Expense",
    "ExpenseCreate",
    "ExpenseUpdate",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceScope",
    "InvoiceStatus",
    "InvoiceUpdate",
    "LineItemCreate",
    "LineItemType",
    "LineItemUpdate",
    "ManualTimeEntryCreate",
    "Project",
    "ProjectCreate",
    "ProjectSummary",
    "ProjectUpdate",
    "RunningTimer",
    "StopTimerRequest",
    "TimeEntry",
    "TimeEntryUpdate",
]
