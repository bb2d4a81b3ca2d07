import logging
import sqlite3

from ..constants import TABLE_SCHEMA_VERSION

_log = logging.getLogger(__name__)


def _ensure_table(conn: sqlite3.Connection):
    # single-row table: id is pinned to 1
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        );
    """)


def _parse(version: str) -> tuple[int, ...]:
    parts = []
    for piece in str(version).split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


def get_current_version(conn: sqlite3.Connection) -> str | None:
    _ensure_table(conn)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    return row[0] if row else None


def set_current_version(conn: sqlite3.Connection, version: str):
    _ensure_table(conn)
    conn.execute(
        f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
        "ON CONFLICT(id) DO UPDATE SET version=excluded.version;",
        (version,),
    )
    conn.commit()


def compare_versions(a: str, b: str) -> int:
    """-1 / 0 / 1 comparing dotted versions numerically ('1.10.0' > '1.9.2')."""
    pa, pb = _parse(a), _parse(b)
    width = max(len(pa), len(pb))
    pa += (0,) * (width - len(pa))
    pb += (0,) * (width - len(pb))
    return (pa > pb) - (pa < pb)


def ensure_version(conn: sqlite3.Connection, version: str) -> str:
    """
    Stamp `version` on a fresh DB and return it.

    An existing stamp is never rewritten here; when it differs from `version`
    a warning is logged and the stored value is returned.
    """
    current = get_current_version(conn)
    if current is None:
        set_current_version(conn, version)
        return version
    cmp = compare_versions(current, version)
    if cmp < 0:
        _log.warning("Database schema %s is older than application schema %s", current, version)
    elif cmp > 0:
        _log.warning("Database schema %s is newer than application schema %s", current, version)
    return current
