"""SQLAlchemy table definitions for the billing store.

Timestamps are persisted as naive UTC and handed back timezone-aware.
Money and hours are persisted with a fixed scale and handed back as
``Decimal`` quantized to that scale, whichever backend is in use.
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from billing_engine.models.enums import InvoiceStatus, LineItemType


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetimes cannot be stored; attach a timezone")
        return value.astimezone(dt.timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)


class FixedDecimal(TypeDecorator):
    """Decimal with a fixed number of places.

    SQLite has no decimal type, so values are stored there as text to keep
    them exact; other backends get a real NUMERIC column.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, scale: int = 2, precision: int = 14):
        super().__init__(precision=precision, scale=scale, asdecimal=True)
        self.scale = scale
        self.quantum = Decimal(1).scaleb(-scale)

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(32))
        return dialect.type_descriptor(
            Numeric(precision=self.impl.precision, scale=self.scale, asdecimal=True)
        )

    def _quantize(self, value) -> Decimal:
        return Decimal(str(value)).quantize(self.quantum, rounding=ROUND_HALF_UP)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        quantized = self._quantize(value)
        return str(quantized) if dialect.name == "sqlite" else quantized

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._quantize(value)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime, nullable=False, default=lambda: dt.datetime.now(dt.timezone.utc)
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=lambda: dt.datetime.now(dt.timezone.utc),
        onupdate=lambda: dt.datetime.now(dt.timezone.utc),
    )


class AppSettingsRow(Base, TimestampMixin):
    """Singleton row holding business details and the invoice counter."""

    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(200))
    next_invoice_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("id = 1", name="app_settings_singleton_check"),
        CheckConstraint("next_invoice_number >= 1", name="app_settings_counter_check"),
    )


class ClientRow(Base, TimestampMixin):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    default_hourly_rate: Mapped[Decimal] = mapped_column(
        FixedDecimal(2), nullable=False, default=Decimal("0")
    )
    address: Mapped[Optional[str]] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    invoice_email: Mapped[Optional[str]] = mapped_column(String(320))
    contact_person: Mapped[Optional[str]] = mapped_column(String(200))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    projects: Mapped[List["ProjectRow"]] = relationship(back_populates="client")


class ProjectRow(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(
        FixedDecimal(2), nullable=False, default=Decimal("0")
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    client: Mapped[ClientRow] = relationship(back_populates="projects")

    __table_args__ = (Index("ix_projects_client_id", "client_id"),)


class TimeEntryRow(Base, TimestampMixin):
    __tablename__ = "time_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False
    )
    start_at: Mapped[dt.datetime] = mapped_column(UTCDateTime, nullable=False)
    end_at: Mapped[Optional[dt.datetime]] = mapped_column(UTCDateTime)
    total_hours: Mapped[Decimal] = mapped_column(
        FixedDecimal(1, precision=8), nullable=False, default=Decimal("0")
    )
    is_invoiced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL")
    )
    note: Mapped[Optional[str]] = mapped_column(Text)

    project: Mapped[ProjectRow] = relationship()

    __table_args__ = (
        Index("ix_time_entries_project_start", "project_id", "start_at"),
        Index("ix_time_entries_uninvoiced", "is_invoiced", "project_id"),
        Index("ix_time_entries_invoice_id", "invoice_id"),
    )


class ExpenseRow(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False
    )
    expense_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    amount: Mapped[Decimal] = mapped_column(FixedDecimal(2), nullable=False)
    is_billable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_invoiced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL")
    )

    project: Mapped[ProjectRow] = relationship()

    __table_args__ = (
        Index("ix_expenses_uninvoiced", "is_invoiced", "project_id"),
        Index("ix_expenses_invoice_id", "invoice_id"),
    )


class InvoiceRow(Base, TimestampMixin):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False
    )
    date_invoiced: Mapped[dt.date] = mapped_column(Date, nullable=False)
    due_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(
            InvoiceStatus,
            name="invoice_status",
            values_callable=lambda enum: [member.value for member in enum],
            validate_strings=True,
        ),
        nullable=False,
        default=InvoiceStatus.UNPAID,
    )
    subtotal: Mapped[Decimal] = mapped_column(
        FixedDecimal(2), nullable=False, default=Decimal("0.00")
    )
    total: Mapped[Decimal] = mapped_column(
        FixedDecimal(2), nullable=False, default=Decimal("0.00")
    )
    date_sent: Mapped[Optional[dt.date]] = mapped_column(Date)
    date_paid: Mapped[Optional[dt.date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    client: Mapped[ClientRow] = relationship()
    project: Mapped[ProjectRow] = relationship()
    line_items: Mapped[List["InvoiceLineItemRow"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InvoiceLineItemRow.id",
    )

    __table_args__ = (
        Index("ix_invoices_client_id", "client_id"),
        Index("ix_invoices_status", "status"),
    )


class InvoiceLineItemRow(Base, TimestampMixin):
    __tablename__ = "invoice_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[LineItemType] = mapped_column(
        Enum(
            LineItemType,
            name="line_item_type",
            values_callable=lambda enum: [member.value for member in enum],
            validate_strings=True,
        ),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(FixedDecimal(2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(FixedDecimal(2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(FixedDecimal(2), nullable=False)
    linked_time_entry_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("time_entries.id", ondelete="SET NULL")
    )
    linked_expense_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("expenses.id", ondelete="SET NULL")
    )

    invoice: Mapped[InvoiceRow] = relationship(back_populates="line_items")

    __table_args__ = (Index("ix_invoice_line_items_invoice_id", "invoice_id"),)
