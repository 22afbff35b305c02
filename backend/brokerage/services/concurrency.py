# Overview: Transaction helpers for single-writer-per-job mutations.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for job mutations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id column on Job
    still catches a lost race there.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run ``func`` and commit, as one transaction.

    Lock timeouts/deadlocks (OperationalError) are retried with backoff.
    A stale version (another writer committed first) is never retried or
    merged: it rolls back and surfaces as ConflictError. Domain errors raised
    by ``func`` roll back and propagate unchanged.
    """
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except StaleDataError:
            db.session.rollback()
            raise ConflictError("Job was modified by another user; reload and try again")
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
