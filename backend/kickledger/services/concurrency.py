# Overview: Service-layer operations for concurrency; locking and retry around ledger writes.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class ConcurrentModificationError(Exception):
    """A row changed between read and conditional write; the caller must re-read."""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock contention.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (version_id conflicts). Business errors and ConcurrentModificationError
    propagate immediately: a payout whose pending set moved underneath it must
    be re-read by the operator, not replayed.
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
