"""
Billing services operating on the store.

Each public operation runs as one transaction and either returns its
result or raises a ``billing_engine.errors.BillingError``.
"""

from .catalog_service import CatalogService
from .invoice_builder import InvoiceBuilder
from .invoice_lines import InvoiceLineLedger
from .invoice_service import InvoiceService
from .timer_controller import TimerController

__all__ = [
    "CatalogService",
    "InvoiceBuilder",
    "InvoiceLineLedger",
    "InvoiceService",
    "TimerController",
]
