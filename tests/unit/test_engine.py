"""Unit tests for the billing engine facade."""

import datetime as dt

import pytest

from billing_engine.calculators.clock import SystemClock
from billing_engine.config import BillingSystemConfig
from billing_engine.engine import BillingEngine
from billing_engine.errors import InvalidInputError


class TestBillingEngine:
    """Test wiring of settings into the services."""

    def test_services_share_store_and_clock(self, engine, db, clock):
        assert engine.timer.db is db
        assert engine.builder.ledger is engine.ledger
        assert engine.reports.clock is clock

    def test_settings_applied(self, db, clock):
        settings = BillingSystemConfig(
            _env_file=None,
            database_url="sqlite://",
            timezone="Pacific/Auckland",
            due_day_of_month=15,
            timer_clock_skew_seconds=30,
            invoice_number_prefix="ACME-",
            invoice_number_width=3,
        )
        engine = BillingEngine(db, clock, settings)

        assert engine.timer.clock_skew == dt.timedelta(seconds=30)
        assert engine.builder.due_day_of_month == 15
        assert engine.next_invoice_number() == "ACME-001"

    def test_from_settings(self, settings):
        engine = BillingEngine.from_settings(settings)
        try:
            engine.init_db()
            assert isinstance(engine.clock, SystemClock)
            assert engine.clock.tz.key == "Pacific/Auckland"
            assert engine.next_invoice_number() == "INV-0001"
        finally:
            engine.db.dispose()

    def test_set_next_invoice_number(self, engine):
        engine.set_next_invoice_number(12)
        assert engine.next_invoice_number() == "INV-0012"

    def test_set_next_invoice_number_invalid(self, engine):
        with pytest.raises(InvalidInputError):
            engine.set_next_invoice_number(-3)
