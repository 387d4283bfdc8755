"""Time entry and expense data models for the billing engine.

Timestamps are timezone-aware UTC. ``end_at`` is None while a timer runs,
and ``total_hours`` is fixed when the entry is closed.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from billing_engine.models.base import BaseDataModel, to_decimal
from billing_engine.models.project import Client, Project


def _require_aware(value: Optional[dt.datetime], field_name: str) -> Optional[dt.datetime]:
    if value is not None and value.tzinfo is None:
        raise ValueError(f"{field_name} must include a timezone offset")
    return value


class TimeEntry(BaseDataModel):
    """Represents a tracked interval of work on a project.

    Attributes:
        id: Entry identifier
        project_id: Project the time is billed to
        start_at: Interval start (UTC)
        end_at: Interval end (UTC), None while the timer is running
        total_hours: Hours rounded up to 0.1, written when the entry closes
        is_invoiced: Whether the entry has been consumed by an invoice
        invoice_id: Consuming invoice (nulled if that invoice is deleted)
        note: Optional description of the work
    """

    id: int
    project_id: int
    start_at: dt.datetime
    end_at: Optional[dt.datetime] = None
    total_hours: Decimal = Decimal("0")
    is_invoiced: bool = False
    invoice_id: Optional[int] = None
    note: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("total_hours", mode="before")
    @classmethod
    def convert_hours(cls, v):
        return to_decimal(v)

    @property
    def is_running(self) -> bool:
        """True while the entry has no end time."""
        return self.end_at is None


class RunningTimer(BaseDataModel):
    """The globally running time entry joined with its project and client."""

    entry: TimeEntry
    project: Project
    client: Client


class ManualTimeEntryCreate(BaseDataModel):
    """Input for recording a closed interval without using the timer."""

    project_id: int = Field(..., gt=0)
    start_at: dt.datetime
    end_at: dt.datetime
    note: Optional[str] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def validate_aware(cls, v: dt.datetime, info) -> dt.datetime:
        return _require_aware(v, info.field_name)

    @model_validator(mode="after")
    def validate_interval(self) -> "ManualTimeEntryCreate":
        if self.end_at <= self.start_at:
            raise ValueError(
                f"end_at ({self.end_at.isoformat()}) must be after "
                f"start_at ({self.start_at.isoformat()})"
            )
        return self


class TimeEntryUpdate(BaseDataModel):
    """Partial update for a time entry. Unset fields keep their value."""

    project_id: Optional[int] = Field(default=None, gt=0)
    start_at: Optional[dt.datetime] = None
    end_at: Optional[dt.datetime] = None
    note: Optional[str] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def validate_aware(cls, v: Optional[dt.datetime], info) -> Optional[dt.datetime]:
        return _require_aware(v, info.field_name)


class StopTimerRequest(BaseDataModel):
    """Input for stopping the running timer of a project.

    Attributes:
        client_stop_at: Stop time reported by the caller's clock; ignored
            when it lies too far in the future
        note: Note to store on the closed entry
    """

    client_stop_at: Optional[dt.datetime] = None
    note: Optional[str] = None

    @field_validator("client_stop_at")
    @classmethod
    def validate_aware(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return _require_aware(v, "client_stop_at")


class Expense(BaseDataModel):
    """Represents an expense incurred on a project.

    Attributes:
        id: Expense identifier
        project_id: Project the expense belongs to
        expense_date: Calendar date of the expense
        description: What the expense was for
        amount: Amount in the single billing currency
        is_billable: Whether the expense is passed on to the client
        is_invoiced: Whether the expense has been consumed by an invoice
        invoice_id: Consuming invoice (nulled if that invoice is deleted)
    """

    id: int
    project_id: int
    expense_date: dt.date
    description: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    is_billable: bool = True
    is_invoiced: bool = False
    invoice_id: Optional[int] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return to_decimal(v)


class ExpenseCreate(BaseDataModel):
    """Input for recording an expense."""

    project_id: int = Field(..., gt=0)
    expense_date: dt.date
    description: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    is_billable: bool = True

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return to_decimal(v)


class ExpenseUpdate(BaseDataModel):
    """Partial update for an expense. Unset fields keep their value."""

    project_id: Optional[int] = Field(default=None, gt=0)
    expense_date: Optional[dt.date] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    is_billable: Optional[bool] = None

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return to_decimal(v)
