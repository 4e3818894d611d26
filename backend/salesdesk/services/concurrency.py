# Overview: Row locking and retry helpers for operations that race on shared rows.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations (sale edits, approval, rejection).

    populate_existing() refreshes rows already in the identity map so the
    caller checks the state as of the lock, not as of an earlier read.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but PostgreSQL honors it.
    """
    return query.populate_existing().with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=(OperationalError, StaleDataError)):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts) by default. Callers may widen `retry_on`,
    e.g. invoice numbering retries on IntegrityError from the unique number.
    The session is rolled back between attempts.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))

