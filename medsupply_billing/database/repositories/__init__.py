# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from medsupply_billing.database.repositories import (
        # Errors
        DomainError, NotFoundError, PersistenceError,
        # Invoices
        InvoicesRepo, Invoice,
        # Payments
        PaymentsRepo, Payment,
        # Allocations
        PaymentAllocationsRepo, PaymentAllocation,
    )
"""

# ----------------- Errors ------------------
from .errors import (
    DomainError,
    NotFoundError,
    PersistenceError,
)

# ---------------- Invoices -----------------
from .invoices_repo import InvoicesRepo, Invoice

# ---------------- Payments -----------------
from .payments_repo import PaymentsRepo, Payment

# --------------- Allocations ---------------
from .payment_allocations_repo import PaymentAllocationsRepo, PaymentAllocation

__all__ = [
    # errors
    "DomainError",
    "NotFoundError",
    "PersistenceError",
    # invoices_repo
    "InvoicesRepo",
    "Invoice",
    # payments_repo
    "PaymentsRepo",
    "Payment",
    # payment_allocations_repo
    "PaymentAllocationsRepo",
    "PaymentAllocation",
]
