# Overview: Row locking and retry helpers shared by order writes and identifier allocation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Lock the order (or line) rows a lifecycle operation is about to change.

    SQLite ignores SELECT ... FOR UPDATE. Orders and lines carry version_id,
    so two managers editing the same order there still collide with
    StaleDataError rather than one silently overwriting the other.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run an order write (or counter increment) and retry it on contention.

    func must redo its own reads: each attempt starts from a rolled-back
    session. Retried errors:
    - OperationalError: "database is locked" / deadlock while another
      request holds the order or id_counters rows
    - StaleDataError: the order's version_id moved under us

    Domain errors (OrderError subclasses) are never retried and propagate
    on the first attempt.
    """
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning(
                    "Giving up after %s attempts: %s", attempts, exc.__class__.__name__
                )
                raise
            current_app.logger.info(
                "Retrying order write after %s (attempt %s of %s)",
                exc.__class__.__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
