from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ...modules.payments.payment_utilities.status import ensure_valid
from .errors import DomainError, PersistenceError, translate_db_errors


@dataclass
class Invoice:
    id: str | None
    company_id: str
    invoice_number: str
    total_amount: float
    paid_amount: float = 0.0
    balance_due: float = 0.0
    status: str = "draft"
    customer_id: str | None = None
    invoice_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


_COLUMNS = (
    "id, company_id, invoice_number, "
    "CAST(COALESCE(total_amount, 0) AS REAL) AS total_amount, "
    "CAST(COALESCE(paid_amount, 0) AS REAL)  AS paid_amount, "
    "CAST(COALESCE(balance_due, 0) AS REAL)  AS balance_due, "
    "status, customer_id, invoice_date, created_at, updated_at"
)


class InvoicesRepo:
    """
    Invoice headers (rows in invoices).

    paid_amount / balance_due / status are derived values; they are written by
    payment recording and by balance reconciliation, nothing else.
    """

    # Columns a caller may change through update_invoice(...)
    UPDATABLE: frozenset[str] = frozenset({"paid_amount", "balance_due", "status", "updated_at"})

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Queries ----------------------------------------------------------

    def get_invoice_by_id(self, invoice_id: str) -> Invoice | None:
        with translate_db_errors(f"Could not load invoice {invoice_id}"):
            r = self.conn.execute(
                f"SELECT {_COLUMNS} FROM invoices WHERE id=?",
                (invoice_id,),
            ).fetchone()
        return Invoice(**dict(r)) if r else None

    def list_invoices(self, company_id: Optional[str] = None) -> list[Invoice]:
        """Newest first. All companies when company_id is None."""
        with translate_db_errors("Could not list invoices"):
            if company_id is None:
                rows = self.conn.execute(
                    f"SELECT {_COLUMNS} FROM invoices ORDER BY created_at DESC, rowid DESC"
                ).fetchall()
            else:
                rows = self.conn.execute(
                    f"SELECT {_COLUMNS} FROM invoices WHERE company_id=? "
                    "ORDER BY created_at DESC, rowid DESC",
                    (company_id,),
                ).fetchall()
        return [Invoice(**dict(r)) for r in rows]

    def get_invoice_ids_by_company(self, company_id: str) -> list[str]:
        with translate_db_errors(f"Could not list invoices for company {company_id}"):
            rows = self.conn.execute(
                "SELECT id FROM invoices WHERE company_id=? ORDER BY created_at DESC, rowid DESC",
                (company_id,),
            ).fetchall()
        return [r["id"] for r in rows]

    # ---- Mutations --------------------------------------------------------

    def create(self, invoice: Invoice) -> str:
        """
        Insert a new invoice and return its id (generated when not supplied).
        balance_due defaults to the total when the header has no payments yet.
        Raises DomainError for a status outside the invoices CHECK vocabulary.
        """
        try:
            status = ensure_valid(invoice.status)
        except ValueError as e:
            raise DomainError(str(e)) from e
        invoice_id = invoice.id or str(uuid.uuid4())
        balance = invoice.balance_due
        if not balance and not invoice.paid_amount:
            balance = invoice.total_amount
        with translate_db_errors(f"Could not create invoice {invoice.invoice_number}"):
            self.conn.execute(
                """
                INSERT INTO invoices (
                    id, company_id, customer_id, invoice_number, invoice_date,
                    total_amount, paid_amount, balance_due, status, created_at
                ) VALUES (
                    :id, :company_id, :customer_id, :invoice_number, COALESCE(:invoice_date, CURRENT_DATE),
                    :total_amount, :paid_amount, :balance_due, :status, COALESCE(:created_at, CURRENT_TIMESTAMP)
                )
                """,
                {
                    "id": invoice_id,
                    "company_id": invoice.company_id,
                    "customer_id": invoice.customer_id,
                    "invoice_number": invoice.invoice_number,
                    "invoice_date": invoice.invoice_date,
                    "total_amount": float(invoice.total_amount),
                    "paid_amount": float(invoice.paid_amount),
                    "balance_due": float(balance),
                    "status": status,
                    "created_at": invoice.created_at,
                },
            )
            self.conn.commit()
        return invoice_id

    def update_invoice(self, invoice_id: str, fields: Mapping[str, Any]) -> None:
        """
        Partial update restricted to UPDATABLE columns.
        Raises PersistenceError on unknown columns, a missing row or a DB failure.
        """
        unknown = set(fields) - self.UPDATABLE
        if unknown:
            raise PersistenceError(f"Cannot update invoice column(s): {', '.join(sorted(unknown))}")
        if not fields:
            return

        assignments = ", ".join(f"{col}=:{col}" for col in fields)
        params = dict(fields)
        params["id"] = invoice_id
        with translate_db_errors(f"Could not update invoice {invoice_id}"):
            cur = self.conn.execute(f"UPDATE invoices SET {assignments} WHERE id=:id", params)
            if cur.rowcount == 0:
                self.conn.rollback()
                raise PersistenceError(f"Invoice {invoice_id} was not updated (no such row)")
            self.conn.commit()
