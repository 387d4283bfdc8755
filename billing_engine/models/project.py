"""Client and project data models for the billing engine.

This module defines the Client and Project records returned by the engine,
and the input models used to create or patch them.
"""
import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from billing_engine.models.base import BaseDataModel, to_decimal


def _strip_required(v: str, field_name: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{field_name} cannot be empty or whitespace")
    return v.strip()


class Client(BaseDataModel):
    """Represents a billed client.

    Attributes:
        id: Client identifier
        name: Client name
        default_hourly_rate: Rate suggested for new projects (not used for billing)
        address: Postal address
        email: Contact email
        invoice_email: Address invoices are sent to
        contact_person: Named contact
        notes: Free-form notes

    Example:
        >>> client = Client(id=1, name="Acme Corp", default_hourly_rate="120")
        >>> client.default_hourly_rate
        Decimal('120')
    """

    id: int
    name: str
    default_hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    address: Optional[str] = None
    email: Optional[str] = None
    invoice_email: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("default_hourly_rate", mode="before")
    @classmethod
    def convert_rate(cls, v):
        return to_decimal(v)


class ClientCreate(BaseDataModel):
    """Input for creating a client."""

    name: str = Field(..., min_length=1)
    default_hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    address: Optional[str] = None
    email: Optional[str] = None
    invoice_email: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v, "name")

    @field_validator("default_hourly_rate", mode="before")
    @classmethod
    def convert_rate(cls, v):
        return to_decimal(v)


class ClientUpdate(BaseDataModel):
    """Partial update for a client. Unset fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1)
    default_hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    address: Optional[str] = None
    email: Optional[str] = None
    invoice_email: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v, "name")

    @field_validator("default_hourly_rate", mode="before")
    @classmethod
    def convert_rate(cls, v):
        return to_decimal(v)


class Project(BaseDataModel):
    """Represents a project billed to exactly one client.

    Attributes:
        id: Project identifier
        client_id: Owning client (fixed once the project exists)
        name: Project name, used in invoice line descriptions
        hourly_rate: Rate applied to uninvoiced hours at invoicing time
        active: Whether the project is offered for new time tracking
        notes: Free-form notes

    Example:
        >>> project = Project(id=3, client_id=1, name="Website", hourly_rate=100)
        >>> project.hourly_rate
        Decimal('100')
    """

    id: int
    client_id: int
    name: str
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    active: bool = True
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def convert_rate(cls, v):
        return to_decimal(v)


class ProjectCreate(BaseDataModel):
    """Input for creating a project."""

    client_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    active: bool = True
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v, "name")

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def convert_rate(cls, v):
        return to_decimal(v)


class ProjectUpdate(BaseDataModel):
    """Partial update for a project.

    ``client_id`` is deliberately absent: project ownership never changes.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    active: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v, "name")

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def convert_rate(cls, v):
        return to_decimal(v)
