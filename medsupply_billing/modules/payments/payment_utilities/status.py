"""
payment_utilities/status.py

Invoice status vocabulary. Must stay in step with the invoices.status CHECK
constraint in database/schema.py.
"""
from __future__ import annotations

from typing import Optional

VALID_STATES: tuple[str, ...] = ("draft", "sent", "partial", "paid", "overdue", "cancelled")

DRAFT = "draft"
PARTIAL = "partial"
PAID = "paid"

# States balance reconciliation can assign; everything else is workflow-owned
PAYMENT_DERIVED_STATES: tuple[str, ...] = (DRAFT, PARTIAL, PAID)


def ensure_valid(state: Optional[str]) -> str:
    """
    Canonical (lowercased, stripped) form of `state`.
    Raises ValueError for anything the CHECK constraint would reject.
    """
    s = (state or "").strip().lower()
    if s not in VALID_STATES:
        raise ValueError(f"Invalid invoice status {state!r}; expected one of: " + ", ".join(VALID_STATES))
    return s


def is_payment_derived(state: Optional[str]) -> bool:
    """True for the statuses reconciliation recomputes from allocations."""
    return (state or "").strip().lower() in PAYMENT_DERIVED_STATES
