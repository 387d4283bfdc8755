"""Validation layer for engine inputs and invoice lifecycle rules."""

from billing_engine.validators.inputs import parse_input, require_positive_id, require_project_ids
from billing_engine.validators.lifecycle import (
    ALLOWED_TRANSITIONS,
    can_delete,
    can_mutate_lines,
    is_allowed_transition,
    is_outstanding,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "can_delete",
    "can_mutate_lines",
    "is_allowed_transition",
    "is_outstanding",
    "parse_input",
    "require_positive_id",
    "require_project_ids",
]
