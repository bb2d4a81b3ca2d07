"""
reconciliation/payment_sync.py

Find payments that were recorded without any allocation, suggest the invoice
each one most likely settles, and apply accepted suggestions.

Suggestion rules (same customer, invoice dated 0..180 days before the payment):
  high    payment amount equals the invoice's outstanding balance
  medium  payment amount equals the invoice total
  low     0 < payment amount <= invoice total
Anything else is not suggested. Amounts are "equal" within one cent.

A payment larger than the invoice total is intentionally never suggested,
not even as "low": allocating it in full would push the invoice into a
negative balance.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from ....constants import MONEY_TOLERANCE
from ....database.repositories.errors import DomainError
from ....database.repositories.invoices_repo import Invoice, InvoicesRepo
from ....database.repositories.payment_allocations_repo import PaymentAllocationsRepo
from ....database.repositories.payments_repo import Payment, PaymentsRepo
from ....utils.helpers import now_iso
from ..payment_utilities.calculations import amounts_differ, project_invoice_after_allocation
from .balance_reconciler import BalanceReconciler

_log = logging.getLogger(__name__)

MATCH_WINDOW_DAYS = 180
MAX_SUGGESTIONS = 50

HIGH = "high"
MEDIUM = "medium"
LOW = "low"
_CONFIDENCE_RANK = {HIGH: 3, MEDIUM: 2, LOW: 1}


@dataclass
class PaymentMatch:
    payment: Payment
    invoice: Invoice
    confidence: str
    reason: str


@dataclass
class PaymentSyncAnalysis:
    total_payments: int = 0
    payments_with_allocations: int = 0
    payments_without_allocations: int = 0
    unallocated_payments: list[Payment] = field(default_factory=list)
    invoices_needing_recalculation: list[Invoice] = field(default_factory=list)
    potential_matches: list[PaymentMatch] = field(default_factory=list)


@dataclass
class SyncResult:
    success: bool = False
    allocations_created: int = 0
    invoices_updated: int = 0
    errors: list[str] = field(default_factory=list)
    details: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class RecalculationResult:
    updated: int = 0
    errors: list[str] = field(default_factory=list)


def _as_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def score_match(payment: Payment, invoice: Invoice) -> Optional[tuple[str, str]]:
    """(confidence, reason) for one payment/invoice pair, or None when no rule applies."""
    amount = float(payment.amount)
    total = float(invoice.total_amount or 0.0)
    balance = invoice.balance_due or (total - (invoice.paid_amount or 0.0))

    if abs(amount - balance) < MONEY_TOLERANCE:
        return HIGH, "Exact amount match with invoice balance"
    if abs(amount - total) < MONEY_TOLERANCE:
        return MEDIUM, "Exact amount match with invoice total"
    if 0 < amount <= total:
        return LOW, "Partial payment amount"
    return None


def _within_window(payment: Payment, invoice: Invoice) -> bool:
    paid_on = _as_date(payment.payment_date)
    issued_on = _as_date(invoice.invoice_date)
    if paid_on is None or issued_on is None:
        return False
    age = (paid_on - issued_on).days
    return 0 <= age <= MATCH_WINDOW_DAYS


class PaymentSynchronizer:
    def __init__(
        self,
        payments: PaymentsRepo,
        invoices: InvoicesRepo,
        allocations: PaymentAllocationsRepo,
        reconciler: Optional[BalanceReconciler] = None,
    ) -> None:
        self.payments = payments
        self.invoices = invoices
        self.allocations = allocations
        self.reconciler = reconciler or BalanceReconciler(invoices, allocations)

    # ---- analysis ---------------------------------------------------------

    def analyze_payment_sync_status(self, company_id: Optional[str] = None) -> PaymentSyncAnalysis:
        """Read-only snapshot. Raises PersistenceError when the data cannot be read."""
        payments = self.payments.list_payments(company_id)
        invoices = self.invoices.list_invoices(company_id)
        allocations = self.allocations.list_allocations(company_id)

        allocated_payment_ids = {a.payment_id for a in allocations}
        allocated_by_invoice: dict[str, float] = {}
        for a in allocations:
            allocated_by_invoice[a.invoice_id] = allocated_by_invoice.get(a.invoice_id, 0.0) + (a.amount_allocated or 0.0)

        unallocated = [p for p in payments if p.id not in allocated_payment_ids]

        matches: list[PaymentMatch] = []
        for payment in unallocated:
            if payment.customer_id is None:
                continue
            for invoice in invoices:
                if invoice.customer_id != payment.customer_id or not _within_window(payment, invoice):
                    continue
                scored = score_match(payment, invoice)
                if scored is None:
                    continue
                confidence, reason = scored
                matches.append(PaymentMatch(payment, invoice, confidence, reason))

        matches.sort(key=lambda m: _CONFIDENCE_RANK[m.confidence], reverse=True)

        needing = [
            inv for inv in invoices
            if amounts_differ(allocated_by_invoice.get(inv.id, 0.0), inv.paid_amount or 0.0)
        ]

        return PaymentSyncAnalysis(
            total_payments=len(payments),
            payments_with_allocations=len(payments) - len(unallocated),
            payments_without_allocations=len(unallocated),
            unallocated_payments=unallocated,
            invoices_needing_recalculation=needing,
            potential_matches=matches[:MAX_SUGGESTIONS],
        )

    # ---- apply ------------------------------------------------------------

    def synchronize_payments(
        self,
        matches: Iterable[PaymentMatch],
        recalculate_all: bool = False,
        company_id: Optional[str] = None,
    ) -> SyncResult:
        """
        Allocate each matched payment in full to its invoice and roll the
        invoice header forward. A failing match is recorded and skipped.
        """
        result = SyncResult()

        for match in matches:
            payment, invoice = match.payment, match.invoice
            try:
                self.allocations.create(
                    payment_id=payment.id,
                    invoice_id=invoice.id,
                    amount_allocated=payment.amount,
                )
            except DomainError as e:
                result.errors.append(f"Failed to create allocation for payment {payment.payment_number}: {e}")
                continue
            result.allocations_created += 1

            try:
                # re-read: an earlier match in this run may have moved the header
                current = self.invoices.get_invoice_by_id(invoice.id) or invoice
                paid, balance, status = project_invoice_after_allocation(
                    total_amount=float(current.total_amount or 0.0),
                    current_paid_amount=float(current.paid_amount or 0.0),
                    new_allocation=float(payment.amount),
                )
                self.invoices.update_invoice(
                    invoice.id,
                    {"paid_amount": paid, "balance_due": balance, "status": status, "updated_at": now_iso()},
                )
            except DomainError as e:
                result.errors.append(f"Failed to update invoice {invoice.invoice_number}: {e}")
                continue

            result.invoices_updated += 1
            result.details.append({
                "type": "allocation_created",
                "payment": payment.payment_number,
                "invoice": invoice.invoice_number,
                "amount": payment.amount,
                "confidence": match.confidence,
            })

        if recalculate_all:
            recalculated = self.recalculate_all_invoice_balances(company_id)
            result.errors.extend(recalculated.errors)

        result.success = not result.errors or result.allocations_created > 0
        _log.info(
            "Payment sync: %d allocations created, %d invoices updated, %d errors",
            result.allocations_created, result.invoices_updated, len(result.errors),
        )
        return result

    def recalculate_all_invoice_balances(self, company_id: Optional[str] = None) -> RecalculationResult:
        """Rewrite every drifted invoice header from its allocations."""
        out = RecalculationResult()
        try:
            invoices = self.invoices.list_invoices(company_id)
        except DomainError as e:
            out.errors.append(f"Recalculation failed: {e}")
            return out

        for invoice in invoices:
            try:
                rec = self.reconciler.reconcile_invoice_balance(invoice.id, fix=True)
            except DomainError as e:
                out.errors.append(f"Invoice {invoice.id}: {e}")
                continue
            if rec.error:
                out.errors.append(f"Failed to update invoice {invoice.invoice_number}: {rec.error}")
            elif rec.fixed:
                out.updated += 1
        return out
