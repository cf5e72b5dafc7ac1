# Overview: Transaction helpers shared by the write paths; row locks, write lock, retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# Lost races that are safe to replay from the top of the operation
TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Read rows for a check-then-act sequence.

    Objects already in the identity map are overwritten with the row as read,
    so balance and status checks never see a stale copy.
    NOTE: SQLite drops FOR UPDATE; begin_write() provides the lock there.
    """
    return query.with_for_update().populate_existing()


def begin_write() -> None:
    """
    Take the database write lock before the first read of a write operation.

    SQLite only: BEGIN IMMEDIATE makes concurrent writers queue up instead of
    both reading the same balance and failing on commit. A session that has
    already flushed writes is left alone; its transaction holds the lock and
    the operation commits together with that pending work.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_connection = db.session.connection().connection.dbapi_connection
    if getattr(dbapi_connection, "in_transaction", False):
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on: tuple = ()):
    """
    Run a unit of work, replaying it after a transient failure.

    func opens, performs and commits its own transaction. Lock timeouts,
    version conflicts and any retry_on types are retried with exponential
    backoff; anything else (business errors included) rolls back and raises.
    """
    retryable = TRANSIENT_ERRORS + tuple(retry_on)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retryable as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "%s hit %s; retry %d of %d",
                getattr(func, "__qualname__", "operation"), type(exc).__name__, attempt, attempts - 1,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise
