import logging
from pathlib import Path
import sqlite3
import sys

from ..constants import SCHEMA_VERSION
from ..utils.loggers import get_logger
from .versioning import ensure_version

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- tenants -------- */
CREATE TABLE IF NOT EXISTS companies (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    currency    TEXT NOT NULL DEFAULT 'KES',
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

/* -------- users (creator of payments) -------- */
CREATE TABLE IF NOT EXISTS profiles (
    id          TEXT PRIMARY KEY,
    company_id  TEXT,
    email       TEXT,
    full_name   TEXT,
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE SET NULL
);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    id            TEXT PRIMARY KEY,
    company_id    TEXT NOT NULL,
    name          TEXT NOT NULL,
    email         TEXT,
    phone         TEXT,
    created_at    TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_customers_company ON customers(company_id);

/* ======================== BILLING ======================== */

CREATE TABLE IF NOT EXISTS invoices (
    id              TEXT PRIMARY KEY,
    company_id      TEXT NOT NULL,
    customer_id     TEXT,
    invoice_number  TEXT NOT NULL,
    invoice_date    DATE NOT NULL DEFAULT CURRENT_DATE,
    due_date        DATE,
    subtotal        NUMERIC NOT NULL DEFAULT 0,
    tax_amount      NUMERIC NOT NULL DEFAULT 0,
    total_amount    NUMERIC NOT NULL DEFAULT 0,
    paid_amount     NUMERIC NOT NULL DEFAULT 0,
    balance_due     NUMERIC NOT NULL DEFAULT 0,
    status          TEXT    NOT NULL DEFAULT 'draft'
                    CHECK (status IN ('draft','sent','partial','paid','overdue','cancelled')),
    created_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at      TIMESTAMP,
    UNIQUE (company_id, invoice_number),
    FOREIGN KEY (company_id)  REFERENCES companies(id) ON DELETE CASCADE,
    FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_invoices_company  ON invoices(company_id, created_at);
CREATE INDEX IF NOT EXISTS idx_invoices_customer ON invoices(customer_id);

CREATE TABLE IF NOT EXISTS payments (
    id                TEXT PRIMARY KEY,
    company_id        TEXT NOT NULL,
    customer_id       TEXT,
    payment_number    TEXT NOT NULL,
    payment_date      DATE NOT NULL DEFAULT CURRENT_DATE,
    amount            NUMERIC NOT NULL,
    payment_method    TEXT NOT NULL DEFAULT 'cash'
                      CHECK (payment_method IN ('cash','bank_transfer','mpesa','cheque','card','other')),
    reference_number  TEXT,
    notes             TEXT,
    created_by        TEXT,
    created_at        TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (company_id, payment_number),
    FOREIGN KEY (company_id)  REFERENCES companies(id) ON DELETE CASCADE,
    FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE SET NULL,
    FOREIGN KEY (created_by)  REFERENCES profiles(id)  ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_payments_company  ON payments(company_id, created_at);
CREATE INDEX IF NOT EXISTS idx_payments_customer ON payments(customer_id);

/* one payment may fund several invoices; one invoice may be paid by several payments */
CREATE TABLE IF NOT EXISTS payment_allocations (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    payment_id        TEXT    NOT NULL,
    invoice_id        TEXT    NOT NULL,
    amount_allocated  NUMERIC NOT NULL,
    created_at        TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (payment_id) REFERENCES payments(id) ON DELETE CASCADE,
    FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_payment_allocations_invoice ON payment_allocations(invoice_id);
CREATE INDEX IF NOT EXISTS idx_payment_allocations_payment ON payment_allocations(payment_id);
"""

_log = logging.getLogger(__name__)


def _ensure_invoice_updated_at(conn: sqlite3.Connection) -> None:
    """
    Safe migration for older DBs that created `invoices` before `updated_at` existed.
    Adds the column if missing. No-op if already present.
    """
    cur = conn.execute("PRAGMA table_info(invoices);")
    cols = {row[1] for row in cur.fetchall()}  # row[1] = name
    if "updated_at" not in cols:
        conn.execute("ALTER TABLE invoices ADD COLUMN updated_at TIMESTAMP;")


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an already open connection."""
    conn.executescript(SQL)
    _ensure_invoice_updated_at(conn)


def init_schema(db_path: Path | str) -> None:
    """Create/upgrade the tables in a database file and stamp the schema version."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        version = ensure_version(conn, SCHEMA_VERSION)
        conn.commit()
    finally:
        conn.close()
    _log.info("Schema applied to %s (version %s)", db_path, version)


if __name__ == "__main__":
    from ..config import DB_PATH

    get_logger()
    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
