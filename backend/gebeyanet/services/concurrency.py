# Overview: Transaction boundary and contention handling for stock writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyError, PersistenceError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    takes the database write lock there instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the write lock up front so check-then-act sequences are serialized.

    On SQLite this issues BEGIN IMMEDIATE; a competing writer waits up to the
    connection timeout (LOCK_TIMEOUT_SECONDS) and then fails with
    "database is locked", which run_with_retry turns into ConcurrencyError.
    Other engines rely on lock_for_update().
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation as one all-or-nothing unit.

    - Any failure rolls the session back before propagating.
    - OperationalError (locks) and StaleDataError (version_id mismatch) are
      retried with exponential backoff; when attempts run out they surface
      as ConcurrencyError.
    - Any other SQLAlchemyError surfaces as PersistenceError.
    """
    if attempts is None:
        attempts = current_app.config.get("RETRY_ATTEMPTS", 3)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning("Giving up after %d contended attempts: %s", attempts, exc)
                raise ConcurrencyError() from exc
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Storage operation failed") from exc
        except Exception:
            db.session.rollback()
            raise
    raise ConcurrencyError()
