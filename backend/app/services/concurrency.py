# Overview: Service-layer helpers for locking, retries and transaction boundaries.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import PersistenceError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must re-read everything it needs,
    since a retry starts from a rolled-back session.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func (which must end with db.session.commit()) as one unit.

    Concurrency failures are retried; once retries are exhausted, or on any
    other database error, the session is rolled back and PersistenceError is
    raised so nothing from func stays applied. Any other error (domain
    ValueErrors included) rolls back and propagates unchanged.
    """
    try:
        return run_with_retry(func, attempts=attempts, backoff_base=backoff_base)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(f"database write failed: {exc.__class__.__name__}") from exc
    except Exception:
        db.session.rollback()
        raise
