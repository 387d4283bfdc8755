"""
Invoice service: status changes, deletion and header edits.

Deleting an invoice removes its lines with it. Time entries and expenses it
consumed keep ``is_invoiced = True`` and lose their invoice reference, so
they are not billed again automatically.
"""

import datetime as dt
import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import select, update

from billing_engine.calculators.clock import Clock
from billing_engine.calculators.time_utils import calculate_due_date
from billing_engine.errors import ConflictError, InvalidInputError, NotFoundError
from billing_engine.models.enums import InvoiceStatus
from billing_engine.models.invoice import BuiltInvoice, Invoice, InvoiceLineItem, InvoiceUpdate
from billing_engine.storage.database import Database
from billing_engine.storage.tables import ExpenseRow, InvoiceRow, TimeEntryRow
from billing_engine.utils.logging_utils import log_operation
from billing_engine.validators.inputs import parse_input, require_positive_id
from billing_engine.validators.lifecycle import can_delete, can_mutate_lines, is_allowed_transition

logger = logging.getLogger(__name__)


def _parse_status(status: Union[InvoiceStatus, str]) -> InvoiceStatus:
    if isinstance(status, InvoiceStatus):
        return status
    for member in InvoiceStatus:
        if str(status).strip().lower() == member.value.lower():
            return member
    valid = ", ".join(member.value for member in InvoiceStatus)
    raise InvalidInputError(f"Unknown status {status!r}; expected one of: {valid}", fields=["status"])


class InvoiceService:
    """Lifecycle operations on stored invoices."""

    def __init__(self, db: Database, clock: Clock, due_day_of_month: int = 20):
        self.db = db
        self.clock = clock
        self.due_day_of_month = due_day_of_month

    def _require_invoice(self, session, invoice_id: int) -> InvoiceRow:
        require_positive_id(invoice_id, "invoice_id")
        invoice = session.get(InvoiceRow, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    @log_operation(name="invoice.set_status", level="INFO")
    def set_status(
        self,
        invoice_id: int,
        status: Union[InvoiceStatus, str],
        date_paid: Optional[dt.date] = None,
    ) -> Invoice:
        """
        Move an invoice to a new status.

        Paid without ``date_paid`` is stamped with today's date. Leaving Paid
        clears the payment date. The first move to Sent records ``date_sent``.

        Raises:
            InvalidInputError: Unknown status, a transition that is not
                allowed, or a payment date on a non-Paid status
            NotFoundError: Unknown invoice
        """
        new_status = _parse_status(status)
        if date_paid is not None and new_status is not InvoiceStatus.PAID:
            raise InvalidInputError(
                "date_paid can only be set together with status Paid", fields=["date_paid"]
            )

        with self.db.transaction() as session:
            invoice = self._require_invoice(session, invoice_id)
            old_status = invoice.status
            if not is_allowed_transition(old_status, new_status):
                raise InvalidInputError(
                    f"Cannot change invoice status from {old_status.value} to {new_status.value}",
                    fields=["status"],
                )

            today = self.clock.today()
            if new_status is InvoiceStatus.PAID:
                invoice.date_paid = date_paid or invoice.date_paid or today
            else:
                invoice.date_paid = None
            if new_status is InvoiceStatus.SENT and invoice.date_sent is None:
                invoice.date_sent = today
            invoice.status = new_status
            session.flush()
            result = Invoice.model_validate(invoice)

        logger.info(
            f"Invoice {result.number} status {old_status.value} -> {new_status.value}"
        )
        return result

    @log_operation(name="invoice.delete", level="INFO")
    def delete(self, invoice_id: int) -> None:
        """
        Delete an invoice and its lines.

        Consumed time entries and expenses stay flagged as invoiced with their
        invoice reference cleared.

        Raises:
            NotFoundError: Unknown invoice
            ConflictError: The invoice is paid
        """
        with self.db.transaction() as session:
            invoice = self._require_invoice(session, invoice_id)
            if not can_delete(invoice.status):
                logger.warning(f"Refusing to delete paid invoice {invoice.number}")
                raise ConflictError("Cannot delete paid invoices")

            number = invoice.number
            detached_entries = session.execute(
                update(TimeEntryRow)
                .where(TimeEntryRow.invoice_id == invoice.id)
                .values(invoice_id=None)
            ).rowcount
            detached_expenses = session.execute(
                update(ExpenseRow)
                .where(ExpenseRow.invoice_id == invoice.id)
                .values(invoice_id=None)
            ).rowcount
            session.delete(invoice)

        logger.info(
            f"Deleted invoice {number}; {detached_entries} time entr(y/ies) and "
            f"{detached_expenses} expense(s) remain flagged as invoiced"
        )

    def get_invoice(self, invoice_id: int) -> BuiltInvoice:
        """An invoice with its lines."""
        with self.db.transaction() as session:
            invoice = self._require_invoice(session, invoice_id)
            return BuiltInvoice(
                invoice=Invoice.model_validate(invoice),
                line_items=[InvoiceLineItem.model_validate(line) for line in invoice.line_items],
            )

    def list_invoices(
        self,
        status: Optional[Union[InvoiceStatus, str]] = None,
        client_id: Optional[int] = None,
    ) -> List[Invoice]:
        """Invoices, newest first, optionally filtered by status and client."""
        stmt = select(InvoiceRow)
        if status is not None:
            stmt = stmt.where(InvoiceRow.status == _parse_status(status))
        if client_id is not None:
            stmt = stmt.where(InvoiceRow.client_id == client_id)
        stmt = stmt.order_by(InvoiceRow.date_invoiced.desc(), InvoiceRow.id.desc())
        with self.db.transaction() as session:
            return [Invoice.model_validate(row) for row in session.execute(stmt).scalars()]

    @log_operation(name="invoice.update", level="INFO")
    def update_invoice(
        self, invoice_id: int, data: Union[InvoiceUpdate, Mapping[str, Any], None] = None, **kwargs
    ) -> Invoice:
        """
        Edit the invoice date, due date or notes. The number never changes.

        Changing ``date_invoiced`` without an explicit ``due_date`` moves the
        due date along with it.

        Raises:
            InvalidInputError: Malformed fields
            NotFoundError: Unknown invoice
            ConflictError: The invoice is paid
        """
        patch = parse_input(InvoiceUpdate, data, **kwargs)
        changes = patch.model_dump(exclude_unset=True)

        with self.db.transaction() as session:
            invoice = self._require_invoice(session, invoice_id)
            if not can_mutate_lines(invoice.status):
                logger.warning(f"Refusing to edit paid invoice {invoice.number}")
                raise ConflictError("Cannot edit paid invoices")

            if changes.get("date_invoiced") is not None:
                invoice.date_invoiced = changes["date_invoiced"]
                if changes.get("due_date") is None:
                    invoice.due_date = calculate_due_date(
                        invoice.date_invoiced, self.due_day_of_month
                    )
            if changes.get("due_date") is not None:
                invoice.due_date = changes["due_date"]
            if "notes" in changes:
                invoice.notes = changes["notes"]
            session.flush()
            result = Invoice.model_validate(invoice)

        logger.info(f"Updated invoice {result.number}")
        return result
