from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Optional

from .errors import translate_db_errors


@dataclass
class PaymentAllocation:
    id: int | None
    payment_id: str
    invoice_id: str
    amount_allocated: float
    created_at: str | None = None


class PaymentAllocationsRepo:
    """
    Rows in payment_allocations: the share of one payment applied to one invoice.

    Conventions:
      • Read-only from the reconciliation side; the sum of amount_allocated per
        invoice is the ground truth for invoices.paid_amount.
      • A payment may be split across several invoices and an invoice may be
        settled by several payments.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Queries ----------------------------------------------------------

    def get_allocations_by_invoice_id(self, invoice_id: str) -> list[PaymentAllocation]:
        with translate_db_errors(f"Could not load allocations for invoice {invoice_id}"):
            rows = self.conn.execute(
                """
                SELECT id, payment_id, invoice_id,
                       CAST(COALESCE(amount_allocated, 0) AS REAL) AS amount_allocated,
                       created_at
                FROM payment_allocations
                WHERE invoice_id = ?
                ORDER BY created_at, id
                """,
                (invoice_id,),
            ).fetchall()
        return [PaymentAllocation(**dict(r)) for r in rows]

    def get_allocations_by_payment_id(self, payment_id: str) -> list[PaymentAllocation]:
        with translate_db_errors(f"Could not load allocations for payment {payment_id}"):
            rows = self.conn.execute(
                """
                SELECT id, payment_id, invoice_id,
                       CAST(COALESCE(amount_allocated, 0) AS REAL) AS amount_allocated,
                       created_at
                FROM payment_allocations
                WHERE payment_id = ?
                ORDER BY created_at, id
                """,
                (payment_id,),
            ).fetchall()
        return [PaymentAllocation(**dict(r)) for r in rows]

    def list_allocations(self, company_id: Optional[str] = None) -> list[PaymentAllocation]:
        """All allocations, optionally restricted to invoices of one company."""
        sql = """
            SELECT pa.id, pa.payment_id, pa.invoice_id,
                   CAST(COALESCE(pa.amount_allocated, 0) AS REAL) AS amount_allocated,
                   pa.created_at
            FROM payment_allocations pa
            JOIN invoices i ON i.id = pa.invoice_id
        """
        params: tuple = ()
        if company_id is not None:
            sql += " WHERE i.company_id = ?"
            params = (company_id,)
        sql += " ORDER BY pa.created_at, pa.id"
        with translate_db_errors("Could not list payment allocations"):
            rows = self.conn.execute(sql, params).fetchall()
        return [PaymentAllocation(**dict(r)) for r in rows]

    def get_allocations_with_payment_details(self, invoice_id: str) -> list[dict[str, Any]]:
        """
        Allocation -> parent payment -> creator profile, newest allocation first.

        Returned keys:
          id, amount_allocated, created_at,
          payment_number, payment_amount, payment_method, payment_date,
          reference_number, creator_full_name, creator_email
        Payment/profile columns are None when the parent row is gone.
        """
        sql = """
        SELECT
            pa.id                                         AS id,
            CAST(COALESCE(pa.amount_allocated, 0) AS REAL) AS amount_allocated,
            pa.created_at                                 AS created_at,
            p.payment_number                              AS payment_number,
            CAST(p.amount AS REAL)                        AS payment_amount,
            p.payment_method                              AS payment_method,
            p.payment_date                                AS payment_date,
            p.reference_number                            AS reference_number,
            pr.full_name                                  AS creator_full_name,
            pr.email                                      AS creator_email
        FROM payment_allocations pa
        LEFT JOIN payments p  ON p.id  = pa.payment_id
        LEFT JOIN profiles pr ON pr.id = p.created_by
        WHERE pa.invoice_id = ?
        ORDER BY pa.created_at DESC, pa.id DESC
        """
        with translate_db_errors(f"Could not load payment history for invoice {invoice_id}"):
            rows = self.conn.execute(sql, (invoice_id,)).fetchall()
        return [dict(r) for r in rows]

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        *,
        payment_id: str,
        invoice_id: str,
        amount_allocated: float,
        created_at: Optional[str] = None,
    ) -> int:
        """Insert one allocation row and return its id."""
        with translate_db_errors(f"Could not allocate payment {payment_id} to invoice {invoice_id}"):
            cur = self.conn.execute(
                """
                INSERT INTO payment_allocations (payment_id, invoice_id, amount_allocated, created_at)
                VALUES (?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP))
                """,
                (payment_id, invoice_id, float(amount_allocated), created_at),
            )
            self.conn.commit()
        return int(cur.lastrowid)
