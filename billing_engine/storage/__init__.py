"""Relational store for clients, projects, time, expenses and invoices."""

from billing_engine.storage.database import Database
from billing_engine.storage.sequencer import InvoiceSequencer

__all__ = ["Database", "InvoiceSequencer"]
