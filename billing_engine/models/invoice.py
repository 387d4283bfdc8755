"""Invoice data models for the billing engine.

This module defines the Invoice and InvoiceLineItem records, the inputs
accepted by the line ledger and invoice builder, and the per-project
uninvoiced summary produced by the ledger.
"""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from billing_engine.models.base import BaseDataModel, to_decimal
from billing_engine.models.enums import InvoiceStatus, LineItemType


class InvoiceLineItem(BaseDataModel):
    """Represents one line of an invoice.

    Attributes:
        id: Line identifier
        invoice_id: Owning invoice
        type: Origin of the line (time, expense or manual)
        description: Text shown on the invoice
        quantity: Hours or units, always positive
        unit_price: Price per unit, may be negative (discounts, credits)
        amount: quantity × unit_price rounded to cents
        linked_time_entry_id: Time entry the line was built from
        linked_expense_id: Expense the line was built from
    """

    id: int
    invoice_id: int
    type: LineItemType
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    linked_time_entry_id: Optional[int] = None
    linked_expense_id: Optional[int] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("quantity", "unit_price", "amount", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


class Invoice(BaseDataModel):
    """Represents an invoice.

    ``subtotal`` and ``total`` are stored values kept equal to the sum of the
    line amounts by every line mutation; there is no tax layer, so they are
    always identical.

    Attributes:
        id: Invoice identifier
        number: Sequential invoice number, e.g. "INV-0042"
        client_id: Billed client
        project_id: Primary project (first project of the build scope)
        date_invoiced: Invoice date
        due_date: Payment due date
        status: Lifecycle status
        subtotal: Sum of line amounts
        total: Equal to subtotal
        date_sent: Date the invoice was marked Sent
        date_paid: Date the invoice was paid
        notes: Free-form notes
    """

    id: int
    number: str
    client_id: int
    project_id: int
    date_invoiced: dt.date
    due_date: dt.date
    status: InvoiceStatus
    subtotal: Decimal
    total: Decimal
    date_sent: Optional[dt.date] = None
    date_paid: Optional[dt.date] = None
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("subtotal", "total", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


class LineItemCreate(BaseDataModel):
    """Input for adding a line to an invoice."""

    type: LineItemType = LineItemType.MANUAL
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Decimal
    linked_time_entry_id: Optional[int] = Field(default=None, gt=0)
    linked_expense_id: Optional[int] = Field(default=None, gt=0)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description cannot be empty or whitespace")
        return v.strip()

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)


class LineItemUpdate(BaseDataModel):
    """Partial update for an invoice line. Unset fields keep their value."""

    description: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    unit_price: Optional[Decimal] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("description cannot be empty or whitespace")
        return v.strip() if v is not None else v

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return to_decimal(v)

    @field_validator("unit_price")
    @classmethod
    def validate_unit_price(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v == 0:
            raise ValueError("unit_price must be non-zero")
        return v


class InvoiceUpdate(BaseDataModel):
    """Editable invoice header fields. The number and status are not here."""

    date_invoiced: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    notes: Optional[str] = None


class InvoiceScope(BaseDataModel):
    """Projects to invoice, optionally constrained to one client.

    A client-scoped build requires every project to belong to ``client_id``.
    """

    client_id: Optional[int] = Field(default=None, gt=0)
    project_ids: List[int] = Field(default_factory=list)

    @classmethod
    def for_project(cls, project_id: int) -> "InvoiceScope":
        return cls(project_ids=[project_id])

    @classmethod
    def for_client(cls, client_id: int, project_ids: List[int]) -> "InvoiceScope":
        return cls(client_id=client_id, project_ids=project_ids)


class BuildInvoiceRequest(BaseDataModel):
    """Options for turning uninvoiced work into an invoice.

    Attributes:
        date_invoiced: Invoice date; the due date derives from it
        up_to_date: Inclusive cutoff for entries and expenses
        group_by_day: One time line per project per day instead of per entry
        include_notes: Append time entry notes to line descriptions
        notes: Invoice notes
    """

    date_invoiced: dt.date
    up_to_date: dt.date
    group_by_day: bool = False
    include_notes: bool = True
    notes: Optional[str] = None


class BuiltInvoice(BaseDataModel):
    """An invoice together with its line items."""

    invoice: Invoice
    line_items: List[InvoiceLineItem]


class ProjectSummary(BaseDataModel):
    """Uninvoiced work of one project up to a cutoff date.

    Attributes:
        project_id: Project identifier
        project_name: Project name
        client_id: Owning client
        hourly_rate: Current project rate used for pricing
        uninvoiced_hours: Sum of closed, uninvoiced entry hours
        time_amount: Hours priced at the current rate
        expense_amount: Sum of billable, uninvoiced expenses
        total_amount: time_amount + expense_amount rounded to cents
        time_entry_count: Number of entries summed
        expense_count: Number of expenses summed
    """

    project_id: int
    project_name: str
    client_id: int
    hourly_rate: Decimal
    uninvoiced_hours: Decimal
    time_amount: Decimal
    expense_amount: Decimal
    total_amount: Decimal
    time_entry_count: int = 0
    expense_count: int = 0
