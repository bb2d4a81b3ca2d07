from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from typing import Optional

from .errors import DomainError, translate_db_errors


@dataclass
class Payment:
    id: str | None
    company_id: str
    payment_number: str
    amount: float
    payment_method: str = "cash"
    payment_date: str | None = None
    customer_id: str | None = None
    reference_number: str | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: str | None = None


_COLUMNS = (
    "id, company_id, payment_number, CAST(amount AS REAL) AS amount, payment_method, "
    "payment_date, customer_id, reference_number, notes, created_by, created_at"
)


class PaymentsRepo:
    """
    Customer receipts (rows in payments).

    A payment only affects invoices through payment_allocations; recording a
    payment here does not touch any invoice header.
    """

    METHODS: set[str] = {"cash", "bank_transfer", "mpesa", "cheque", "card", "other"}

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def get(self, payment_id: str) -> Payment | None:
        with translate_db_errors(f"Could not load payment {payment_id}"):
            r = self.conn.execute(
                f"SELECT {_COLUMNS} FROM payments WHERE id=?",
                (payment_id,),
            ).fetchone()
        return Payment(**dict(r)) if r else None

    def list_payments(self, company_id: Optional[str] = None) -> list[Payment]:
        """Newest first. All companies when company_id is None."""
        with translate_db_errors("Could not list payments"):
            if company_id is None:
                rows = self.conn.execute(
                    f"SELECT {_COLUMNS} FROM payments ORDER BY created_at DESC, rowid DESC"
                ).fetchall()
            else:
                rows = self.conn.execute(
                    f"SELECT {_COLUMNS} FROM payments WHERE company_id=? "
                    "ORDER BY created_at DESC, rowid DESC",
                    (company_id,),
                ).fetchall()
        return [Payment(**dict(r)) for r in rows]

    def create(self, payment: Payment) -> str:
        """
        Insert a payment and return its id (generated when not supplied).
        Soft validation mirrors the DB CHECK constraints.
        """
        if payment.payment_method not in self.METHODS:
            raise DomainError(f"Unsupported payment method: {payment.payment_method}")
        if payment.amount is None or float(payment.amount) == 0:
            raise DomainError("Payment amount cannot be zero.")

        payment_id = payment.id or str(uuid.uuid4())
        with translate_db_errors(f"Could not record payment {payment.payment_number}"):
            self.conn.execute(
                """
                INSERT INTO payments (
                    id, company_id, customer_id, payment_number, payment_date, amount,
                    payment_method, reference_number, notes, created_by, created_at
                ) VALUES (
                    :id, :company_id, :customer_id, :payment_number, COALESCE(:payment_date, CURRENT_DATE), :amount,
                    :payment_method, :reference_number, :notes, :created_by, COALESCE(:created_at, CURRENT_TIMESTAMP)
                )
                """,
                {
                    "id": payment_id,
                    "company_id": payment.company_id,
                    "customer_id": payment.customer_id,
                    "payment_number": payment.payment_number,
                    "payment_date": payment.payment_date,
                    "amount": float(payment.amount),
                    "payment_method": payment.payment_method,
                    "reference_number": payment.reference_number,
                    "notes": payment.notes,
                    "created_by": payment.created_by,
                    "created_at": payment.created_at,
                },
            )
            self.conn.commit()
        return payment_id
