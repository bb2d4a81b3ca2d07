"""
payment_utilities/calculations.py

Pure helpers for invoice balance math. Mirrors the rules used by:
- BalanceReconciler (paid amount / balance / status derived from allocations).
- Payment synchronization (header roll-up after a new allocation).

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs in utils.helpers.
"""
from __future__ import annotations

from typing import Iterable, Tuple

from ....constants import MONEY_TOLERANCE
from .status import DRAFT, PAID, PARTIAL

__all__ = [
    "sum_allocated",
    "balance_from_paid",
    "expected_status",
    "amounts_differ",
    "project_invoice_after_allocation",
]


# -----------------------------
# Core utilities
# -----------------------------

def amounts_differ(a: float, b: float, tolerance: float = MONEY_TOLERANCE) -> bool:
    """True when |a - b| is strictly greater than the tolerance (one cent by default)."""
    return abs(a - b) > tolerance


# -----------------------------
# Invoice roll-ups
# -----------------------------

def sum_allocated(amounts: Iterable[float | None]) -> float:
    """Sum of allocated amounts; None rows count as 0. Empty -> 0.0."""
    return float(sum((a or 0.0) for a in amounts))


def balance_from_paid(total_amount: float, paid_amount: float) -> float:
    """
    balance = total_amount - paid_amount.

    Not clamped: an over-allocated invoice carries a negative balance so the
    excess stays visible.
    """
    return (total_amount or 0.0) - paid_amount


def expected_status(paid_amount: float, balance: float) -> str:
    """
    Status implied by payments alone (first match wins):
      - 'paid'    if balance <= 0 and paid > 0
      - 'partial' if paid > 0
      - 'draft'   otherwise

    Notes:
    - Any workflow status ('sent', 'overdue', ...) collapses to one of these.
    - No rounding is performed.
    """
    if balance <= 0 and paid_amount > 0:
        return PAID
    if paid_amount > 0:
        return PARTIAL
    return DRAFT


def project_invoice_after_allocation(
    *,
    total_amount: float,
    current_paid_amount: float,
    new_allocation: float,
) -> Tuple[float, float, str]:
    """
    Returns (projected_paid_amount, projected_balance, projected_status) after
    applying one more allocation to the invoice header.
    """
    paid = (current_paid_amount or 0.0) + new_allocation
    balance = balance_from_paid(total_amount, paid)
    return paid, balance, expected_status(paid, balance)
