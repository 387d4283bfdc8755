"""Billing aggregation and invoice lifecycle engine."""

from billing_engine.engine import BillingEngine
from billing_engine.errors import (
    BillingError,
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    "BillingEngine",
    "BillingError",
    "ConflictError",
    "InternalError",
    "InvalidInputError",
    "NotFoundError",
]
