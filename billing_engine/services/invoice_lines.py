"""
Invoice line ledger: line item mutations that keep invoice totals exact.

Every mutation recomputes ``subtotal`` and ``total`` from the remaining
lines and stores them in the same transaction as the line change. Lines of
a paid invoice cannot be touched.
"""

import logging
from decimal import Decimal
from typing import Any, List, Mapping, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_engine.calculators.time_utils import line_amount, round_money, sum_money
from billing_engine.errors import ConflictError, InvalidInputError, NotFoundError
from billing_engine.models.invoice import InvoiceLineItem, LineItemCreate, LineItemUpdate
from billing_engine.models.time_entry import Expense, TimeEntry
from billing_engine.storage.database import Database
from billing_engine.storage.tables import ExpenseRow, InvoiceLineItemRow, InvoiceRow, TimeEntryRow
from billing_engine.utils.logging_utils import log_operation
from billing_engine.validators.inputs import parse_input, require_positive_id
from billing_engine.validators.lifecycle import can_mutate_lines

logger = logging.getLogger(__name__)

PAID_LINES_MESSAGE = "Cannot modify line items on paid invoices"


def _stored_quantity(value) -> Decimal:
    quantity = round_money(value)
    if quantity <= 0:
        raise InvalidInputError("quantity must be at least 0.01", fields=["quantity"])
    return quantity


def _stored_unit_price(value) -> Decimal:
    unit_price = round_money(value)
    if unit_price == 0:
        raise InvalidInputError("unit_price must be non-zero", fields=["unit_price"])
    return unit_price


def recalculate_totals(session: Session, invoice: InvoiceRow) -> None:
    """Store ``subtotal = total = round(Σ line.amount, 2)`` on the invoice."""
    session.flush()
    amounts = session.execute(
        select(InvoiceLineItemRow.amount).where(InvoiceLineItemRow.invoice_id == invoice.id)
    ).scalars()
    total = sum_money(amounts)
    invoice.subtotal = total
    invoice.total = total
    logger.debug(f"Invoice {invoice.number} total recalculated: {total}")


class InvoiceLineLedger:
    """Adds, edits and removes invoice lines."""

    def __init__(self, db: Database):
        self.db = db

    def _require_invoice(self, session: Session, invoice_id: int) -> InvoiceRow:
        invoice = session.get(InvoiceRow, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def _require_line(self, session: Session, line_id: int) -> InvoiceLineItemRow:
        line = session.get(InvoiceLineItemRow, line_id)
        if line is None:
            raise NotFoundError("Line item", line_id)
        return line

    def _require_mutable(self, invoice: InvoiceRow) -> None:
        if not can_mutate_lines(invoice.status):
            logger.warning(f"Refusing line change on paid invoice {invoice.number}")
            raise ConflictError(PAID_LINES_MESSAGE)

    def _claim_linked_rows(
        self, session: Session, invoice: InvoiceRow, item: LineItemCreate
    ) -> None:
        """Check the rows a new line references and mark them billed on this invoice.

        Raises:
            NotFoundError: A referenced time entry or expense does not exist
            ConflictError: It is running, or already billed on another invoice
        """
        linked = []
        if item.linked_time_entry_id is not None:
            entry = session.get(TimeEntryRow, item.linked_time_entry_id)
            if entry is None:
                raise NotFoundError("Time entry", item.linked_time_entry_id)
            if entry.end_at is None:
                raise ConflictError(
                    "Cannot bill a running time entry",
                    conflicting=TimeEntry.model_validate(entry),
                )
            linked.append((entry, TimeEntry))
        if item.linked_expense_id is not None:
            expense = session.get(ExpenseRow, item.linked_expense_id)
            if expense is None:
                raise NotFoundError("Expense", item.linked_expense_id)
            linked.append((expense, Expense))

        for row, record_cls in linked:
            if row.is_invoiced and row.invoice_id != invoice.id:
                logger.warning(
                    f"Refusing to link {record_cls.__name__} {row.id} to invoice "
                    f"{invoice.number}: already billed"
                )
                raise ConflictError(
                    f"{record_cls.__name__} {row.id} is already invoiced",
                    conflicting=record_cls.model_validate(row),
                )
        for row, _ in linked:
            row.is_invoiced = True
            row.invoice_id = invoice.id

    @log_operation(name="invoice.add_line", level="INFO")
    def add_line(
        self, invoice_id: int, data: Union[LineItemCreate, Mapping[str, Any], None] = None, **kwargs
    ) -> InvoiceLineItem:
        """
        Add a line to an invoice.

        Raises:
            InvalidInputError: Empty description or non-positive quantity
            NotFoundError: Unknown invoice, time entry or expense
            ConflictError: The invoice is paid, or a linked row is running or
                billed elsewhere
        """
        require_positive_id(invoice_id, "invoice_id")
        item = parse_input(LineItemCreate, data, **kwargs)
        quantity = _stored_quantity(item.quantity)
        unit_price = round_money(item.unit_price)

        with self.db.transaction() as session:
            invoice = self._require_invoice(session, invoice_id)
            self._require_mutable(invoice)
            self._claim_linked_rows(session, invoice, item)

            row = InvoiceLineItemRow(
                invoice_id=invoice.id,
                type=item.type,
                description=item.description,
                quantity=quantity,
                unit_price=unit_price,
                amount=line_amount(quantity, unit_price),
                linked_time_entry_id=item.linked_time_entry_id,
                linked_expense_id=item.linked_expense_id,
            )
            session.add(row)
            recalculate_totals(session, invoice)
            line = InvoiceLineItem.model_validate(row)
            total = invoice.total

        logger.info(f"Added line {line.id} to invoice {invoice_id}; total now {total}")
        return line

    @log_operation(name="invoice.update_line", level="INFO")
    def update_line(
        self, line_id: int, data: Union[LineItemUpdate, Mapping[str, Any], None] = None, **kwargs
    ) -> InvoiceLineItem:
        """
        Patch a line; unset fields keep their value and the amount is recomputed.

        Raises:
            InvalidInputError: Empty description, non-positive quantity or
                zero unit price
            NotFoundError: Unknown line
            ConflictError: The invoice is paid
        """
        require_positive_id(line_id, "line_id")
        patch = parse_input(LineItemUpdate, data, **kwargs)
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)

        with self.db.transaction() as session:
            row = self._require_line(session, line_id)
            invoice = self._require_invoice(session, row.invoice_id)
            self._require_mutable(invoice)

            if "description" in changes:
                row.description = changes["description"]
            if "quantity" in changes:
                row.quantity = _stored_quantity(changes["quantity"])
            if "unit_price" in changes:
                row.unit_price = _stored_unit_price(changes["unit_price"])
            row.amount = line_amount(row.quantity, row.unit_price)

            recalculate_totals(session, invoice)
            line = InvoiceLineItem.model_validate(row)
            total = invoice.total

        logger.info(f"Updated line {line_id} on invoice {line.invoice_id}; total now {total}")
        return line

    @log_operation(name="invoice.delete_line", level="INFO")
    def delete_line(self, line_id: int) -> None:
        """
        Remove a line.

        Raises:
            NotFoundError: Unknown line
            ConflictError: The invoice is paid
        """
        require_positive_id(line_id, "line_id")
        with self.db.transaction() as session:
            row = self._require_line(session, line_id)
            invoice = self._require_invoice(session, row.invoice_id)
            self._require_mutable(invoice)

            session.delete(row)
            recalculate_totals(session, invoice)
            total = invoice.total

        logger.info(f"Deleted line {line_id} from invoice {invoice.id}; total now {total}")

    def list_lines(self, invoice_id: int) -> List[InvoiceLineItem]:
        """Lines of an invoice in creation order."""
        require_positive_id(invoice_id, "invoice_id")
        with self.db.transaction() as session:
            self._require_invoice(session, invoice_id)
            rows = (
                session.execute(
                    select(InvoiceLineItemRow)
                    .where(InvoiceLineItemRow.invoice_id == invoice_id)
                    .order_by(InvoiceLineItemRow.id)
                )
                .scalars()
                .all()
            )
            return [InvoiceLineItem.model_validate(row) for row in rows]
