# database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..config import DB_PATH, ensure_data_dir
from ..constants import SCHEMA_VERSION
from .schema import apply_schema
from .versioning import ensure_version
from .seeders.default_data import seed as seed_default_data


def get_connection(db_path: Path | str | None = None, *, seed: bool = True) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema, version row and (unless seed=False) the default tenant
    are applied idempotently.

    Pass ":memory:" for a throwaway database (tests, dry runs).
    """
    if db_path is None:
        db_path = ensure_data_dir(DB_PATH)
    elif str(db_path) != ":memory:":
        ensure_data_dir(Path(db_path))

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")

    # Always apply the schema (idempotent: uses CREATE IF NOT EXISTS)
    apply_schema(conn)
    ensure_version(conn, SCHEMA_VERSION)

    # Seeders should be safe to run repeatedly (idempotent).
    if seed:
        seed_default_data(conn)

    conn.commit()
    return conn


__all__ = [
    "get_connection",
]
