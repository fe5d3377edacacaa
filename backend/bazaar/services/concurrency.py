# Overview: Service-layer helpers for write serialization and retry of store conflicts.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking and refresh any identity-map copy of the row.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update().populate_existing()


def begin_write() -> None:
    """
    Open the current transaction as a writer.

    On SQLite this takes the database RESERVED lock up front (BEGIN IMMEDIATE),
    so two read-modify-write operations can never interleave. Other engines
    rely on lock_for_update() row locks plus the optimistic version column.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation, retrying on concurrency-related failures.

    Retries on OperationalError (lock timeouts, deadlocks) and StaleDataError
    (optimistic version conflicts). Any other exception rolls the session back
    and propagates unchanged, so a failed operation never leaves partial writes
    behind in the session.
    """
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.info(
                "Retrying after store conflict (attempt %d/%d): %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
