"""Monotonic invoice numbering backed by the settings row."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_engine.calculators.time_utils import format_invoice_number
from billing_engine.errors import InvalidInputError
from billing_engine.storage.database import SETTINGS_ROW_ID
from billing_engine.storage.tables import AppSettingsRow, InvoiceRow

logger = logging.getLogger(__name__)


class InvoiceSequencer:
    """Hands out invoice numbers such as ``INV-0042``.

    Numbers are drawn inside the caller's transaction, so a rolled-back
    build also rolls back the counter. Numbers already taken (for example
    after the counter was moved backwards) are skipped.
    """

    def __init__(self, prefix: str = "INV-", width: int = 4):
        self.prefix = prefix
        self.width = width

    def _settings(self, session: Session) -> AppSettingsRow:
        settings = session.execute(
            select(AppSettingsRow).where(AppSettingsRow.id == SETTINGS_ROW_ID).with_for_update()
        ).scalar_one_or_none()
        if settings is None:
            settings = AppSettingsRow(id=SETTINGS_ROW_ID, next_invoice_number=1)
            session.add(settings)
            session.flush()
        return settings

    def _is_taken(self, session: Session, number: str) -> bool:
        return (
            session.execute(select(InvoiceRow.id).where(InvoiceRow.number == number)).first()
            is not None
        )

    def next_number(self, session: Session) -> str:
        """Reserve and return the next free invoice number."""
        settings = self._settings(session)
        counter = settings.next_invoice_number
        number = format_invoice_number(counter, self.prefix, self.width)
        while self._is_taken(session, number):
            logger.warning(f"Invoice number {number} already in use, skipping")
            counter += 1
            number = format_invoice_number(counter, self.prefix, self.width)
        settings.next_invoice_number = counter + 1
        logger.debug(f"Reserved invoice number {number}")
        return number

    def peek(self, session: Session) -> str:
        """Number the next build would receive, without reserving it."""
        return format_invoice_number(
            self._settings(session).next_invoice_number, self.prefix, self.width
        )

    def set_next(self, session: Session, next_number: int) -> None:
        """Move the counter, e.g. to continue an existing numbering series."""
        if isinstance(next_number, bool) or not isinstance(next_number, int) or next_number < 1:
            raise InvalidInputError(
                "next_invoice_number must be a positive integer",
                fields=["next_invoice_number"],
            )
        self._settings(session).next_invoice_number = next_number
        logger.info(f"Invoice counter set to {next_number}")
