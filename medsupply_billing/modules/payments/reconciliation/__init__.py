from .balance_reconciler import (
    AllocationRepository,
    BalanceReconciler,
    InvoiceRepository,
    PaymentAuditEntry,
    ReconciliationResult,
    ReconciliationSummary,
)
from .payment_sync import (
    PaymentMatch,
    PaymentSyncAnalysis,
    PaymentSynchronizer,
    RecalculationResult,
    SyncResult,
)

__all__ = [
    "AllocationRepository",
    "BalanceReconciler",
    "InvoiceRepository",
    "PaymentAuditEntry",
    "ReconciliationResult",
    "ReconciliationSummary",
    "PaymentMatch",
    "PaymentSyncAnalysis",
    "PaymentSynchronizer",
    "RecalculationResult",
    "SyncResult",
]
