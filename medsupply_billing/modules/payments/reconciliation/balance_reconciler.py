"""
reconciliation/balance_reconciler.py

Detect (and optionally repair) drift between an invoice header's stored
paid_amount / balance_due / status and the values implied by its payment
allocations.

Policy:
- Single invoice: errors propagate, prefixed "Failed to reconcile invoice {id}: ".
  NotFoundError keeps its class; any other failure surfaces as PersistenceError.
  A failed fix write is reported in the result, never raised.
- Batch: one invoice failing never stops the others; the failure is recorded
  in `errors` and the invoice is left out of `results` / `total`.
- Advisory helpers (audit trail, yes/no discrepancy check) never raise.

There is no lock or transaction around read -> compare -> write. A payment
recorded between the read and the write can be overwritten by a fix.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from ....constants import MONEY_TOLERANCE
from ....database.repositories.errors import DomainError, NotFoundError, PersistenceError
from ....database.repositories.invoices_repo import Invoice
from ....database.repositories.payment_allocations_repo import PaymentAllocation
from ....utils.helpers import now_iso
from ..payment_utilities.calculations import (
    amounts_differ,
    balance_from_paid,
    expected_status,
    sum_allocated,
)

_log = logging.getLogger(__name__)

MATCHED = "matched"
MISMATCHED = "mismatched"


# -----------------------------
# Collaborators
# -----------------------------

class InvoiceRepository(Protocol):
    def get_invoice_by_id(self, invoice_id: str) -> Optional[Invoice]: ...

    def update_invoice(self, invoice_id: str, fields: dict[str, Any]) -> None: ...

    def get_invoice_ids_by_company(self, company_id: str) -> list[str]: ...


class AllocationRepository(Protocol):
    def get_allocations_by_invoice_id(self, invoice_id: str) -> list[PaymentAllocation]: ...

    def get_allocations_with_payment_details(self, invoice_id: str) -> list[dict[str, Any]]: ...


# -----------------------------
# Results
# -----------------------------

@dataclass
class ReconciliationResult:
    invoice_id: str
    invoice_number: str
    total_amount: float
    calculated_paid_amount: float
    stored_paid_amount: float
    calculated_balance: float
    stored_balance: float
    discrepancy: float
    status: str                 # 'matched' | 'mismatched'
    expected_status: str
    actual_status: str
    fixed: bool = False
    error: Optional[str] = None

    @property
    def is_mismatched(self) -> bool:
        return self.status == MISMATCHED


@dataclass
class ReconciliationSummary:
    total: int = 0
    matched: int = 0
    mismatched: int = 0
    fixed: int = 0
    results: list[ReconciliationResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class PaymentAuditEntry:
    id: Any
    payment_number: Optional[str]
    payment_amount: Optional[float]
    allocated_amount: float
    payment_method: Optional[str]
    payment_date: Optional[str]
    reference_number: Optional[str]
    created_by: Optional[str]
    created_at: Optional[str]


# -----------------------------
# Reconciler
# -----------------------------

class BalanceReconciler:
    def __init__(self, invoices: InvoiceRepository, allocations: AllocationRepository) -> None:
        self.invoices = invoices
        self.allocations = allocations

    # ---- single invoice ---------------------------------------------------

    def reconcile_invoice_balance(self, invoice_id: str, fix: bool = False) -> ReconciliationResult:
        """
        Recompute paid/balance/status from allocations and compare with the header.

        With fix=True and a discrepancy, the header is rewritten to the derived
        values. A failed write is reported in `result.error` (fixed=False); it
        does not raise.

        Raises:
          NotFoundError     the invoice does not exist
          PersistenceError  any other read failure, whatever the repository raised
        """
        prefix = f"Failed to reconcile invoice {invoice_id}: "
        try:
            return self._reconcile(invoice_id, fix)
        except DomainError as e:
            raise type(e)(f"{prefix}{e}") from e
        except Exception as e:
            raise PersistenceError(f"{prefix}{e}") from e

    def _reconcile(self, invoice_id: str, fix: bool) -> ReconciliationResult:
        invoice = self.invoices.get_invoice_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")

        allocations = self.allocations.get_allocations_by_invoice_id(invoice_id)

        total_amount = float(invoice.total_amount or 0.0)
        calculated_paid = sum_allocated(a.amount_allocated for a in allocations)
        calculated_balance = balance_from_paid(total_amount, calculated_paid)
        status = expected_status(calculated_paid, calculated_balance)

        stored_paid = float(invoice.paid_amount or 0.0)
        stored_balance = float(invoice.balance_due or 0.0)
        paid_diff = abs(stored_paid - calculated_paid)
        balance_diff = abs(stored_balance - calculated_balance)
        has_discrepancy = (
            amounts_differ(stored_paid, calculated_paid, MONEY_TOLERANCE)
            or amounts_differ(stored_balance, calculated_balance, MONEY_TOLERANCE)
            or invoice.status != status
        )

        result = ReconciliationResult(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            total_amount=total_amount,
            calculated_paid_amount=calculated_paid,
            stored_paid_amount=stored_paid,
            calculated_balance=calculated_balance,
            stored_balance=stored_balance,
            discrepancy=max(paid_diff, balance_diff),
            status=MISMATCHED if has_discrepancy else MATCHED,
            expected_status=status,
            actual_status=invoice.status,
        )

        if not has_discrepancy:
            return result

        _log.warning(
            "Invoice %s (%s): stored paid=%.2f balance=%.2f status=%s; "
            "allocations give paid=%.2f balance=%.2f status=%s",
            invoice.invoice_number, invoice_id,
            stored_paid, stored_balance, invoice.status,
            calculated_paid, calculated_balance, status,
        )

        if fix:
            try:
                self.invoices.update_invoice(
                    invoice_id,
                    {
                        "paid_amount": calculated_paid,
                        "balance_due": calculated_balance,
                        "status": status,
                        "updated_at": now_iso(),
                    },
                )
            except Exception as e:
                _log.warning("Invoice %s: fix not written: %s", invoice_id, e)
                result.error = str(e)
                result.fixed = False
            else:
                _log.info("Invoice %s: balance corrected", invoice.invoice_number)
                result.fixed = True

        return result

    # ---- batch ------------------------------------------------------------

    def reconcile_all_invoice_balances(self, company_id: str, fix: bool = False) -> ReconciliationSummary:
        """
        Reconcile every invoice of a company, one after another.

        Raises PersistenceError only when the invoice list itself cannot be read.
        """
        try:
            invoice_ids = self.invoices.get_invoice_ids_by_company(company_id)
        except Exception as e:
            raise PersistenceError(f"Failed to reconcile invoices: {e}") from e

        summary = ReconciliationSummary()
        for invoice_id in invoice_ids:
            try:
                summary.results.append(self.reconcile_invoice_balance(invoice_id, fix))
            except Exception as e:
                summary.errors.append(f"Invoice {invoice_id}: {e}")

        summary.total = len(summary.results)
        summary.matched = sum(1 for r in summary.results if r.status == MATCHED)
        summary.mismatched = sum(1 for r in summary.results if r.status == MISMATCHED)
        summary.fixed = sum(1 for r in summary.results if r.fixed)

        _log.info(
            "Company %s: %d reconciled, %d mismatched, %d fixed, %d errors",
            company_id, summary.total, summary.mismatched, summary.fixed, len(summary.errors),
        )
        return summary

    # ---- advisory ---------------------------------------------------------

    def get_payment_audit_trail(self, invoice_id: str) -> list[PaymentAuditEntry]:
        """Payment history for display, newest first. Empty list on any failure."""
        try:
            rows = self.allocations.get_allocations_with_payment_details(invoice_id)
            return [
                PaymentAuditEntry(
                    id=r.get("id"),
                    payment_number=r.get("payment_number"),
                    payment_amount=r.get("payment_amount"),
                    allocated_amount=r.get("amount_allocated"),
                    payment_method=r.get("payment_method"),
                    payment_date=r.get("payment_date"),
                    reference_number=r.get("reference_number"),
                    created_by=r.get("creator_full_name") or r.get("creator_email"),
                    created_at=r.get("created_at"),
                )
                for r in rows
            ]
        except Exception:
            _log.exception("Failed to get payment audit trail for invoice %s", invoice_id)
            return []

    def has_balance_discrepancy(self, invoice_id: str) -> bool:
        """Yes/no drift check; False when the check itself fails."""
        try:
            return self.reconcile_invoice_balance(invoice_id, fix=False).is_mismatched
        except Exception as e:
            _log.error("Failed to check balance discrepancy for invoice %s: %s", invoice_id, e)
            return False
