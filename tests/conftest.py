# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own SQLite file under tmp_path (repos commit, so
#   a shared DB + ROLLBACK would leak state between tests)
# - Schema via get_connection(); fixture rows via tests/seed_common.sql
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Provide handy ids + repo fixtures + an in-memory fake for the reconciler
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional

import pytest

from medsupply_billing.database import get_connection
from medsupply_billing.database.repositories import (
    Invoice,
    InvoicesRepo,
    PaymentAllocation,
    PaymentAllocationsRepo,
    PaymentsRepo,
    PersistenceError,
)

# ---------- Paths ----------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SEED_SQL     = PROJECT_ROOT / "tests" / "seed_common.sql"


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path: Path):
    """
    Fresh DB file with schema + common seed applied.
    """
    con = get_connection(tmp_path / "medsupply_test.db", seed=False)
    try:
        con.executescript(SEED_SQL.read_text(encoding="utf-8"))
        con.commit()
        yield con
    finally:
        con.close()


# ---------- Handy lookups ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Common IDs used throughout the tests."""
    def one(sql: str, *p):
        r = conn.execute(sql, p).fetchone()
        return None if r is None else r[0]

    return {
        "company": one("SELECT id FROM companies WHERE name='Nairobi Medical Supplies'"),
        "other_company": one("SELECT id FROM companies WHERE name='Mombasa Clinic Depot'"),
        "cust_a": one("SELECT id FROM customers WHERE name='Aga Khan Pharmacy'"),
        "cust_b": one("SELECT id FROM customers WHERE name='Kijabe Health Centre'"),
        "cust_c": one("SELECT id FROM customers WHERE name='Coast Dispensary'"),
        "user_ops": one("SELECT id FROM profiles WHERE email='ops@example.com'"),
        "user_mail": one("SELECT id FROM profiles WHERE email='billing@example.com'"),
    }


# ---------- Repositories ----------
@pytest.fixture()
def invoices_repo(conn) -> InvoicesRepo:
    return InvoicesRepo(conn)


@pytest.fixture()
def payments_repo(conn) -> PaymentsRepo:
    return PaymentsRepo(conn)


@pytest.fixture()
def allocations_repo(conn) -> PaymentAllocationsRepo:
    return PaymentAllocationsRepo(conn)


# ---------- In-memory collaborator ----------
class FakeBillingStore:
    """
    Dict-backed stand-in for InvoicesRepo + PaymentAllocationsRepo.

    Failure injection:
      fail_reads    invoice ids whose get_invoice_by_id raises PersistenceError
      fail_writes   invoice ids whose update_invoice raises PersistenceError
      fail_listing  get_invoice_ids_by_company raises PersistenceError
      fail_history  get_allocations_with_payment_details raises RuntimeError
      crash_allocations  invoice ids whose get_allocations_by_invoice_id raises RuntimeError
      crash_writes       invoice ids whose update_invoice raises RuntimeError
    """

    def __init__(self) -> None:
        self.invoices: dict[str, Invoice] = {}
        self.allocations: list[PaymentAllocation] = []
        self.history: dict[str, list[dict[str, Any]]] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail_reads: set[str] = set()
        self.fail_writes: set[str] = set()
        self.fail_listing = False
        self.fail_history = False
        self.crash_allocations: set[str] = set()
        self.crash_writes: set[str] = set()

    # -- setup helpers --
    def add_invoice(
        self,
        invoice_id: str,
        *,
        total: float,
        paid: float = 0.0,
        balance: Optional[float] = None,
        status: str = "draft",
        company_id: str = "co-main",
    ) -> Invoice:
        inv = Invoice(
            id=invoice_id,
            company_id=company_id,
            invoice_number=f"INV-{invoice_id}",
            total_amount=total,
            paid_amount=paid,
            balance_due=total - paid if balance is None else balance,
            status=status,
        )
        self.invoices[invoice_id] = inv
        return inv

    def allocate(self, invoice_id: str, *amounts: float) -> None:
        for n, amount in enumerate(amounts):
            self.allocations.append(
                PaymentAllocation(
                    id=len(self.allocations) + 1,
                    payment_id=f"pay-{invoice_id}-{n}",
                    invoice_id=invoice_id,
                    amount_allocated=amount,
                )
            )

    # -- InvoiceRepository --
    def get_invoice_by_id(self, invoice_id: str) -> Optional[Invoice]:
        if invoice_id in self.fail_reads:
            raise PersistenceError("connection reset by peer")
        return self.invoices.get(invoice_id)

    def update_invoice(self, invoice_id: str, fields: dict[str, Any]) -> None:
        if invoice_id in self.fail_writes:
            raise PersistenceError("permission denied for table invoices")
        if invoice_id in self.crash_writes:
            raise RuntimeError("disk I/O error")
        inv = self.invoices[invoice_id]
        for k, v in fields.items():
            setattr(inv, k, v)
        self.updates.append((invoice_id, dict(fields)))

    def get_invoice_ids_by_company(self, company_id: str) -> list[str]:
        if self.fail_listing:
            raise PersistenceError("statement timeout")
        return [i.id for i in self.invoices.values() if i.company_id == company_id]

    # -- AllocationRepository --
    def get_allocations_by_invoice_id(self, invoice_id: str) -> list[PaymentAllocation]:
        if invoice_id in self.crash_allocations:
            raise RuntimeError("socket closed")
        return [a for a in self.allocations if a.invoice_id == invoice_id]

    def get_allocations_with_payment_details(self, invoice_id: str) -> list[dict[str, Any]]:
        if self.fail_history:
            raise RuntimeError("relation payments does not exist")
        return list(self.history.get(invoice_id, []))


@pytest.fixture()
def store() -> FakeBillingStore:
    return FakeBillingStore()

