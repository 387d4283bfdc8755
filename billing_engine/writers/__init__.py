"""Writers module for generating billing reports.

This module provides pandas DataFrame reports over invoices and tracked time.
"""

from billing_engine.writers.report_generator import BillingReports, ReportGenerator

__all__ = [
    "BillingReports",
    "ReportGenerator",
]
