# Overview: Units of work for stock, counters and money: row locks, commit and conflict retry.

"""
WHY: Checkout, cancellation, ledger moves and rating recomputes all touch
rows that other requests race on. Each of them is written as a closure that
can be replayed from scratch, and run_in_transaction() owns the commit,
the rollback and the retry.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on PostgreSQL; a no-op on SQLite, where
    Product.version_id is what catches a lost update.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func, replaying it after a lock timeout, deadlock or stale version.

    The session is rolled back before every replay and before any error
    leaves this function, so a failed unit of work never leaks partial
    writes into the next one.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                current_app.logger.error(
                    "Giving up after %s conflicting attempts: %s", attempts, type(exc).__name__
                )
                raise
            current_app.logger.warning(
                "%s on attempt %s/%s, retrying", type(exc).__name__, attempt, attempts
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """Run func and commit; returns whatever func returned."""
    def _unit_of_work():
        result = func()
        db.session.commit()
        return result
    return run_with_retry(_unit_of_work, attempts=attempts, backoff_base=backoff_base)
