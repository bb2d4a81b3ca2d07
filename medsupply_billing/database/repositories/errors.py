from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator


# Domain-level error the caller can surface directly (e.g., toast/snackbar)
class DomainError(Exception):
    pass


class NotFoundError(DomainError):
    """The requested record does not exist."""


class PersistenceError(DomainError):
    """Any other read/write failure coming out of the database layer."""


@contextmanager
def translate_db_errors(action: str) -> Iterator[None]:
    """
    Re-raise sqlite3 failures as PersistenceError so callers never have to
    know which driver sits underneath.
    """
    try:
        yield
    except sqlite3.Error as e:
        raise PersistenceError(f"{action}: {e}") from e
