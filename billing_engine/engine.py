"""Billing engine facade wiring the store, clock and services together."""

import logging
from typing import Optional

from billing_engine.aggregators.uninvoiced_ledger import UninvoicedLedger
from billing_engine.calculators.clock import Clock, SystemClock
from billing_engine.config.settings import BillingSystemConfig, get_config
from billing_engine.services.catalog_service import CatalogService
from billing_engine.services.invoice_builder import InvoiceBuilder
from billing_engine.services.invoice_lines import InvoiceLineLedger
from billing_engine.services.invoice_service import InvoiceService
from billing_engine.services.timer_controller import TimerController
from billing_engine.storage.database import Database
from billing_engine.storage.sequencer import InvoiceSequencer
from billing_engine.writers.report_generator import ReportGenerator

logger = logging.getLogger(__name__)


class BillingEngine:
    """
    Entry point for every billing operation.

    Attributes:
        catalog: Clients, projects and expenses
        timer: Timer start/stop and manual time entries
        ledger: Uninvoiced totals per project
        builder: Invoice creation from uninvoiced work
        lines: Invoice line mutations
        invoices: Invoice status, deletion and edits
        reports: pandas billing reports

    Example:
        >>> engine = BillingEngine.from_settings()
        >>> engine.init_db()
        >>> client = engine.catalog.create_client(name="Acme", default_hourly_rate=100)
    """

    def __init__(
        self,
        db: Database,
        clock: Clock,
        settings: Optional[BillingSystemConfig] = None,
    ):
        self.settings = settings or get_config()
        self.db = db
        self.clock = clock
        self.sequencer = InvoiceSequencer(
            prefix=self.settings.invoice_number_prefix,
            width=self.settings.invoice_number_width,
        )

        self.catalog = CatalogService(db)
        self.timer = TimerController(
            db, clock, clock_skew_seconds=self.settings.timer_clock_skew_seconds
        )
        self.ledger = UninvoicedLedger(db, clock)
        self.builder = InvoiceBuilder(
            db,
            clock,
            self.ledger,
            self.sequencer,
            due_day_of_month=self.settings.due_day_of_month,
        )
        self.lines = InvoiceLineLedger(db)
        self.invoices = InvoiceService(
            db, clock, due_day_of_month=self.settings.due_day_of_month
        )
        self.reports = ReportGenerator(db, clock)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[BillingSystemConfig] = None,
        clock: Optional[Clock] = None,
    ) -> "BillingEngine":
        """Build an engine from configuration, using the system clock by default."""
        settings = settings or get_config()
        db = Database.from_settings(settings)
        clock = clock or SystemClock(settings.tzinfo)
        logger.debug(
            f"Billing engine configured (timezone={settings.timezone}, "
            f"environment={settings.environment})"
        )
        return cls(db, clock, settings)

    def init_db(self, company_name: Optional[str] = None) -> None:
        """Create the schema and the settings row if they do not exist."""
        self.db.init_db(company_name=company_name)

    def next_invoice_number(self) -> str:
        """Number the next invoice will receive."""
        with self.db.transaction() as session:
            return self.sequencer.peek(session)

    def set_next_invoice_number(self, next_number: int) -> None:
        with self.db.transaction(lock=True) as session:
            self.sequencer.set_next(session, next_number)
