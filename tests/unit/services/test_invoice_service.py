"""Tests for invoice status changes, deletion and edits."""

import datetime as dt
from decimal import Decimal

import pytest

from billing_engine.errors import ConflictError, InvalidInputError, NotFoundError
from billing_engine.models.enums import InvoiceStatus

DAY = dt.date(2025, 10, 27)


@pytest.fixture
def built(engine, project, add_entry):
    """Unpaid invoice consuming one time entry and one expense."""
    add_entry(project.id, DAY, (9, 0), (10, 0))
    engine.catalog.create_expense(project_id=project.id, expense_date=DAY, amount="25")
    return engine.builder.build_for_project(project.id, up_to_date=DAY)


class TestSetStatus:
    """Test the status state machine on stored invoices."""

    def test_mark_sent_stamps_date(self, engine, built, clock):
        sent = engine.invoices.set_status(built.invoice.id, InvoiceStatus.SENT)
        assert sent.status is InvoiceStatus.SENT
        assert sent.date_sent == clock.today()
        assert sent.date_paid is None

    def test_status_is_case_insensitive(self, engine, built):
        assert engine.invoices.set_status(built.invoice.id, " sent ").status is InvoiceStatus.SENT

    def test_unknown_status(self, engine, built):
        with pytest.raises(InvalidInputError, match="Unknown status") as exc_info:
            engine.invoices.set_status(built.invoice.id, "Cancelled")
        assert exc_info.value.fields == ["status"]

    def test_paid_with_explicit_date(self, engine, built):
        paid = engine.invoices.set_status(
            built.invoice.id, "Paid", date_paid=dt.date(2025, 11, 3)
        )
        assert paid.date_paid == dt.date(2025, 11, 3)

    def test_paid_defaults_to_today(self, engine, built, clock):
        paid = engine.invoices.set_status(built.invoice.id, "Paid")
        assert paid.date_paid == dt.date(2025, 10, 28)
        assert paid.date_paid == clock.today()

    def test_unpay_clears_payment_date(self, engine, built):
        engine.invoices.set_status(built.invoice.id, "Paid")
        unpaid = engine.invoices.set_status(built.invoice.id, "Unpaid")
        assert unpaid.date_paid is None

    def test_date_paid_needs_paid_status(self, engine, built):
        with pytest.raises(InvalidInputError) as exc_info:
            engine.invoices.set_status(built.invoice.id, "Sent", date_paid=DAY)
        assert exc_info.value.fields == ["date_paid"]

    def test_back_to_draft_refused(self, engine, built):
        with pytest.raises(InvalidInputError, match="from Unpaid to Draft"):
            engine.invoices.set_status(built.invoice.id, "Draft")

    def test_unknown_invoice(self, engine):
        with pytest.raises(NotFoundError):
            engine.invoices.set_status(99, "Paid")


class TestDelete:
    """Test invoice deletion."""

    def test_delete_keeps_rows_flagged(self, engine, project, built):
        """Test consumed rows stay invoiced but lose their reference."""
        engine.invoices.delete(built.invoice.id)

        with pytest.raises(NotFoundError):
            engine.invoices.get_invoice(built.invoice.id)

        (entry,) = engine.timer.list_entries(project.id)
        (expense,) = engine.catalog.list_expenses(project.id)
        assert entry.is_invoiced and entry.invoice_id is None
        assert expense.is_invoiced and expense.invoice_id is None

    def test_deleted_work_is_not_rebilled(self, engine, project, built):
        engine.invoices.delete(built.invoice.id)

        assert engine.ledger.summarize([project.id], DAY) == []
        with pytest.raises(InvalidInputError, match="No uninvoiced items"):
            engine.builder.build_for_project(project.id, up_to_date=DAY)

    def test_delete_sent_invoice(self, engine, built):
        engine.invoices.set_status(built.invoice.id, "Sent")
        engine.invoices.delete(built.invoice.id)
        assert engine.invoices.list_invoices() == []

    def test_delete_paid_refused(self, engine, built):
        engine.invoices.set_status(built.invoice.id, "Paid")
        with pytest.raises(ConflictError, match="Cannot delete paid invoices"):
            engine.invoices.delete(built.invoice.id)
        assert len(engine.invoices.get_invoice(built.invoice.id).line_items) == 2

    def test_number_not_reused(self, engine, project, built, add_entry):
        engine.invoices.delete(built.invoice.id)
        add_entry(project.id, DAY, (13, 0), (14, 0))
        rebuilt = engine.builder.build_for_project(project.id, up_to_date=DAY)
        assert rebuilt.invoice.number == "INV-0002"


class TestQueries:
    """Test reading invoices back."""

    def test_get_invoice(self, engine, built):
        fetched = engine.invoices.get_invoice(built.invoice.id)
        assert fetched.invoice.number == built.invoice.number
        assert fetched.invoice.total == Decimal("125.00")
        assert [line.type.value for line in fetched.line_items] == ["time", "expense"]

    def test_list_newest_first(self, engine, project, second_project, add_entry):
        add_entry(project.id, DAY, (9, 0), (10, 0))
        add_entry(second_project.id, DAY, (9, 0), (10, 0))
        older = engine.builder.build_for_project(
            project.id, date_invoiced=dt.date(2025, 10, 1), up_to_date=DAY
        )
        newer = engine.builder.build_for_project(
            second_project.id, date_invoiced=dt.date(2025, 10, 20), up_to_date=DAY
        )

        assert [i.id for i in engine.invoices.list_invoices()] == [
            newer.invoice.id,
            older.invoice.id,
        ]

    def test_list_filters(self, engine, client, built):
        other = engine.catalog.create_client(name="Globex")
        assert len(engine.invoices.list_invoices(status="unpaid")) == 1
        assert engine.invoices.list_invoices(status=InvoiceStatus.PAID) == []
        assert len(engine.invoices.list_invoices(client_id=client.id)) == 1
        assert engine.invoices.list_invoices(client_id=other.id) == []


class TestUpdateInvoice:
    """Test header edits."""

    def test_new_date_moves_due_date(self, engine, built):
        updated = engine.invoices.update_invoice(
            built.invoice.id, date_invoiced=dt.date(2025, 11, 2)
        )
        assert updated.date_invoiced == dt.date(2025, 11, 2)
        assert updated.due_date == dt.date(2025, 12, 20)
        assert updated.number == built.invoice.number

    def test_explicit_due_date_wins(self, engine, built):
        updated = engine.invoices.update_invoice(
            built.invoice.id,
            {"date_invoiced": dt.date(2025, 11, 2), "due_date": dt.date(2025, 11, 16)},
        )
        assert updated.due_date == dt.date(2025, 11, 16)

    def test_notes(self, engine, built):
        updated = engine.invoices.update_invoice(built.invoice.id, notes="PO 4411")
        assert updated.notes == "PO 4411"
        assert updated.due_date == built.invoice.due_date

    def test_number_not_editable(self, engine, built):
        with pytest.raises(InvalidInputError):
            engine.invoices.update_invoice(built.invoice.id, number="INV-9999")

    def test_paid_invoice_locked(self, engine, built):
        engine.invoices.set_status(built.invoice.id, "Paid")
        with pytest.raises(ConflictError, match="Cannot edit paid invoices"):
            engine.invoices.update_invoice(built.invoice.id, notes="Late")
