# Overview: Write locking and lock-contention retry for the sale path.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """Row lock on the product being sold (no-op on SQLite; see begin_write_transaction)."""
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    SQLite has no row locks; take the database write lock up front so the
    read-check-decrement sequence cannot interleave with another writer.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call `func`, rolling back and retrying with exponential backoff when the
    database is locked or a versioned row changed underneath it. The last
    error is re-raised once `attempts` are used up.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
