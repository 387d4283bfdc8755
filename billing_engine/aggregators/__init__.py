"""Aggregators module for summarizing uninvoiced work.

This module provides the read-only ledger of time and expenses that have
not been invoiced yet, grouped per project.
"""

from billing_engine.aggregators.uninvoiced_ledger import ProjectSnapshot, UninvoicedLedger

__all__ = [
    "ProjectSnapshot",
    "UninvoicedLedger",
]
