"""Exception hierarchy for billing engine operations.

Every public engine operation either returns its result or raises one of
these. ``InvalidInputError``, ``NotFoundError`` and ``ConflictError`` are
caller-correctable and carry descriptive messages; ``InternalError`` wraps
storage failures and only ever exposes a generic message.
"""

from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError


class BillingError(Exception):
    """Base exception for billing engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable error payload for transport layers."""
        return {"error": self.message}


class InvalidInputError(BillingError):
    """Malformed or missing input, or a request that cannot be billed.

    Attributes:
        fields: Names of the offending input fields (may be empty)
    """

    def __init__(self, message: str, fields: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.fields: List[str] = list(fields or [])

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "InvalidInputError":
        """Translate a pydantic ValidationError into an InvalidInputError."""
        fields = []
        messages = []
        for detail in error.errors():
            field = ".".join(str(part) for part in detail.get("loc", ())) or "input"
            fields.append(field)
            messages.append(f"{field}: {detail.get('msg', 'invalid value')}")
        return cls("; ".join(messages) or "Invalid input", fields=fields)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.fields:
            payload["fields"] = self.fields
        return payload


class NotFoundError(BillingError):
    """A referenced client, project, invoice, line item or timer does not exist."""

    def __init__(self, entity: str, identifier: Any = None, message: Optional[str] = None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(message or f"{entity} not found")


class ConflictError(BillingError):
    """An operation was refused to protect a billing invariant.

    Attributes:
        conflicting: The record that caused the refusal (running timer,
            overlapping entry), when there is one
    """

    def __init__(self, message: str, conflicting: Any = None):
        super().__init__(message)
        self.conflicting = conflicting

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.conflicting is not None:
            dump = getattr(self.conflicting, "model_dump", None)
            payload["conflicting"] = dump(mode="json") if dump else self.conflicting
        return payload


class InternalError(BillingError):
    """Storage or transaction failure. The whole operation was rolled back."""

    def __init__(self, message: str = "Internal error while processing request"):
        super().__init__(message)
