"""Base model for all data models in the billing engine.

This module provides a base Pydantic model with common configuration
and a shared Decimal coercion helper.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseDataModel(BaseModel):
    """Base class for all data models.

    Provides common configuration for:
    - Validation with type checking
    - Building records straight from ORM rows (``model_validate(row)``)
    - Rejecting unknown fields so typos in patches surface as errors

    Example:
        >>> class Rate(BaseDataModel):
        ...     name: str
        ...     hourly_rate: Decimal
        >>> Rate(name="Standard", hourly_rate="85.00").hourly_rate
        Decimal('85.00')
    """

    model_config = ConfigDict(
        # Allow arbitrary types like Decimal, date, time
        arbitrary_types_allowed=True,
        # Validate on assignment to catch errors early
        validate_assignment=True,
        strict=False,
        # Unknown fields are rejected
        extra="forbid",
        # Records are read from SQLAlchemy rows
        from_attributes=True,
        frozen=False,
    )


def to_decimal(v: Any) -> Any:
    """Convert numeric input to Decimal for precision.

    Floats go through ``str`` so 0.1 stays 0.1. Values that are not numeric
    are returned unchanged for pydantic to reject.
    """
    if v is None or isinstance(v, Decimal) or isinstance(v, bool):
        return v
    if isinstance(v, (int, float, str)):
        try:
            return Decimal(str(v).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert {v!r} to Decimal")
    return v
