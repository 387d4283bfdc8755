"""
Invoice builder: turns uninvoiced work into an invoice.

Validation, the ledger snapshot, numbering, line creation and the flagging
of consumed time entries and expenses all happen inside one write-locked
transaction, so two overlapping builds can never bill the same row twice
and a failed build leaves nothing behind.
"""

import datetime as dt
import logging
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Union

from billing_engine.aggregators.uninvoiced_ledger import ProjectSnapshot, UninvoicedLedger
from billing_engine.calculators.clock import Clock
from billing_engine.calculators.time_utils import (
    aggregate_unique_notes,
    calculate_due_date,
    line_amount,
    local_date,
    sum_money,
)
from billing_engine.errors import InvalidInputError
from billing_engine.models.enums import InvoiceStatus, LineItemType
from billing_engine.models.invoice import (
    BuildInvoiceRequest,
    BuiltInvoice,
    Invoice,
    InvoiceLineItem,
    InvoiceScope,
)
from billing_engine.storage.database import Database
from billing_engine.storage.sequencer import InvoiceSequencer
from billing_engine.storage.tables import InvoiceLineItemRow, InvoiceRow
from billing_engine.utils.logging_utils import log_operation
from billing_engine.validators.inputs import parse_input, require_project_ids

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_DESCRIPTION = "Expense"


@dataclass
class LineDraft:
    """A line item that has been priced but not yet stored."""

    type: LineItemType
    description: str
    quantity: Decimal
    unit_price: Decimal
    linked_time_entry_id: Optional[int] = None
    linked_expense_id: Optional[int] = None

    @property
    def amount(self) -> Decimal:
        return line_amount(self.quantity, self.unit_price)

    def to_row(self, invoice_id: int) -> InvoiceLineItemRow:
        return InvoiceLineItemRow(
            invoice_id=invoice_id,
            type=self.type,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            amount=self.amount,
            linked_time_entry_id=self.linked_time_entry_id,
            linked_expense_id=self.linked_expense_id,
        )


class InvoiceBuilder:
    """
    Builds invoices from the uninvoiced ledger.

    Lines are emitted project by project in scope order: time lines first
    (one per entry, or one per local calendar day with ``group_by_day``),
    then one line per billable expense.

    Example:
        >>> builder = InvoiceBuilder(db, clock, ledger, InvoiceSequencer())
        >>> built = builder.build(
        ...     InvoiceScope(client_id=1, project_ids=[1, 2]),
        ...     date_invoiced=dt.date(2025, 10, 28),
        ...     up_to_date=dt.date(2025, 10, 27),
        ... )
        >>> built.invoice.number, built.invoice.total
        ('INV-0001', Decimal('450.00'))
    """

    def __init__(
        self,
        db: Database,
        clock: Clock,
        ledger: UninvoicedLedger,
        sequencer: InvoiceSequencer,
        due_day_of_month: int = 20,
    ):
        self.db = db
        self.clock = clock
        self.ledger = ledger
        self.sequencer = sequencer
        self.due_day_of_month = due_day_of_month

    def _time_lines(
        self, snap: ProjectSnapshot, group_by_day: bool, include_notes: bool
    ) -> List[LineDraft]:
        project = snap.project
        if not group_by_day:
            lines = []
            for entry in snap.time_entries:
                description = f"{project.name} - {local_date(entry.start_at, self.clock.tz).isoformat()}"
                if include_notes and entry.note and entry.note.strip():
                    description = f"{description}: {entry.note.strip()}"
                lines.append(
                    LineDraft(
                        type=LineItemType.TIME,
                        description=description,
                        quantity=entry.total_hours,
                        unit_price=project.hourly_rate,
                        linked_time_entry_id=entry.id,
                    )
                )
            return lines

        days: "OrderedDict[dt.date, list]" = OrderedDict()
        for entry in snap.time_entries:
            days.setdefault(local_date(entry.start_at, self.clock.tz), []).append(entry)

        lines = []
        for day, entries in days.items():
            description = f"{project.name} - {day.isoformat()}"
            if include_notes:
                notes = aggregate_unique_notes(entry.note for entry in entries)
                if notes:
                    description = f"{description}: {notes}"
            lines.append(
                LineDraft(
                    type=LineItemType.TIME,
                    description=description,
                    quantity=sum((entry.total_hours for entry in entries), Decimal("0")),
                    unit_price=project.hourly_rate,
                )
            )
        return lines

    def _expense_lines(self, snap: ProjectSnapshot, multi_project: bool) -> List[LineDraft]:
        lines = []
        for expense in snap.expenses:
            description = (expense.description or "").strip() or DEFAULT_EXPENSE_DESCRIPTION
            if multi_project:
                description = f"{snap.project.name} - {description}"
            lines.append(
                LineDraft(
                    type=LineItemType.EXPENSE,
                    description=description,
                    quantity=Decimal("1"),
                    unit_price=expense.amount,
                    linked_expense_id=expense.id,
                )
            )
        return lines

    def _resolve_projects(self, session, scope: InvoiceScope):
        if scope.client_id is not None:
            projects = self.ledger.resolve_client_projects(
                session, scope.client_id, scope.project_ids
            )
            return scope.client_id, projects

        projects = self.ledger.load_projects(session, scope.project_ids)
        client_ids = sorted({project.client_id for project in projects})
        if len(client_ids) > 1:
            raise InvalidInputError(
                "Projects of different clients cannot share an invoice",
                fields=["project_ids"],
            )
        return client_ids[0], projects

    @log_operation(name="invoice.build", level="INFO")
    def build(
        self,
        scope: Union[InvoiceScope, Mapping[str, Any]],
        date_invoiced: Optional[dt.date] = None,
        up_to_date: Optional[dt.date] = None,
        group_by_day: bool = False,
        notes: Optional[str] = None,
        include_notes: bool = True,
    ) -> BuiltInvoice:
        """
        Create an invoice for everything billable in scope up to a cutoff.

        Args:
            scope: Projects to bill, optionally constrained to one client
            date_invoiced: Invoice date (defaults to today)
            up_to_date: Inclusive cutoff date (defaults to today)
            group_by_day: Combine a project's entries per local calendar day
            notes: Invoice notes
            include_notes: Append time entry notes to line descriptions

        Returns:
            The stored invoice and its line items

        Raises:
            InvalidInputError: Empty scope, cross-client projects, or
                nothing to bill
            NotFoundError: Unknown client or project
        """
        scope = parse_input(InvoiceScope, scope)
        require_project_ids(scope.project_ids)
        today = self.clock.today()
        request = parse_input(
            BuildInvoiceRequest,
            date_invoiced=date_invoiced or today,
            up_to_date=up_to_date or today,
            group_by_day=group_by_day,
            include_notes=include_notes,
            notes=notes,
        )

        with self.db.transaction(lock=True) as session:
            client_id, projects = self._resolve_projects(session, scope)
            snapshots = self.ledger.snapshot(session, projects, request.up_to_date)
            if not snapshots:
                raise InvalidInputError(
                    f"No uninvoiced items to bill up to {request.up_to_date.isoformat()}",
                    fields=["up_to_date"],
                )

            multi_project = len(projects) > 1
            drafts: List[LineDraft] = []
            for snap in snapshots:
                drafts.extend(self._time_lines(snap, request.group_by_day, request.include_notes))
                drafts.extend(self._expense_lines(snap, multi_project))

            total = sum_money(draft.amount for draft in drafts)
            invoice_row = InvoiceRow(
                number=self.sequencer.next_number(session),
                client_id=client_id,
                project_id=projects[0].id,
                date_invoiced=request.date_invoiced,
                due_date=calculate_due_date(request.date_invoiced, self.due_day_of_month),
                status=InvoiceStatus.UNPAID,
                subtotal=total,
                total=total,
                notes=request.notes,
            )
            session.add(invoice_row)
            session.flush()

            line_rows = [draft.to_row(invoice_row.id) for draft in drafts]
            session.add_all(line_rows)

            self._consume(snapshots, invoice_row.id)
            session.flush()

            built = BuiltInvoice(
                invoice=Invoice.model_validate(invoice_row),
                line_items=[InvoiceLineItem.model_validate(row) for row in line_rows],
            )

        logger.info(
            f"Built invoice {built.invoice.number} for client {client_id}: "
            f"{len(built.line_items)} line(s), total {built.invoice.total}"
        )
        return built

    @staticmethod
    def _consume(snapshots: Iterable[ProjectSnapshot], invoice_id: int) -> None:
        for snap in snapshots:
            for entry in snap.time_entries:
                entry.is_invoiced = True
                entry.invoice_id = invoice_id
            for expense in snap.expenses:
                expense.is_invoiced = True
                expense.invoice_id = invoice_id

    def build_for_project(
        self,
        project_id: int,
        date_invoiced: Optional[dt.date] = None,
        up_to_date: Optional[dt.date] = None,
        group_by_day: bool = False,
        notes: Optional[str] = None,
        include_notes: bool = True,
    ) -> BuiltInvoice:
        """Build an invoice for a single project."""
        return self.build(
            InvoiceScope.for_project(project_id),
            date_invoiced=date_invoiced,
            up_to_date=up_to_date,
            group_by_day=group_by_day,
            notes=notes,
            include_notes=include_notes,
        )
