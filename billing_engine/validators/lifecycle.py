"""Invoice lifecycle rules.

Pure predicates over ``InvoiceStatus``. Paid invoices are locked: their
lines cannot change and they cannot be deleted. A paid invoice can still be
moved back to Unpaid or Sent, which unlocks it again.
"""

from typing import Dict, FrozenSet

from billing_engine.models.enums import InvoiceStatus

ALLOWED_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset(
        {InvoiceStatus.UNPAID, InvoiceStatus.SENT, InvoiceStatus.PAID}
    ),
    InvoiceStatus.UNPAID: frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.UNPAID, InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.UNPAID, InvoiceStatus.SENT}),
}

# Invoices in these states still count as money owed
OUTSTANDING_STATUSES: FrozenSet[InvoiceStatus] = frozenset(
    {InvoiceStatus.UNPAID, InvoiceStatus.SENT}
)


def can_mutate_lines(status: InvoiceStatus) -> bool:
    """Whether line items may be added, changed or removed."""
    return InvoiceStatus(status) is not InvoiceStatus.PAID


def can_delete(status: InvoiceStatus) -> bool:
    """Whether the invoice may be deleted."""
    return InvoiceStatus(status) is not InvoiceStatus.PAID


def is_allowed_transition(old: InvoiceStatus, new: InvoiceStatus) -> bool:
    """Whether an invoice may move from ``old`` to ``new``.

    Setting the current status again is always allowed. Nothing moves back
    to Draft.

    Example:
        >>> is_allowed_transition(InvoiceStatus.PAID, InvoiceStatus.SENT)
        True
        >>> is_allowed_transition(InvoiceStatus.SENT, InvoiceStatus.DRAFT)
        False
    """
    old, new = InvoiceStatus(old), InvoiceStatus(new)
    return old is new or new in ALLOWED_TRANSITIONS[old]


def is_outstanding(status: InvoiceStatus) -> bool:
    """Whether an invoice with this status is still awaiting payment."""
    return InvoiceStatus(status) in OUTSTANDING_STATUSES
