from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..common.app_logger import get_logger
from ..core.exceptions import TransientStorageError
from .connection import DatabaseConnection

logger = get_logger(__name__)

# Lock wait timeout, deadlock, lost connection / server gone away.
TRANSIENT_ERRNOS = frozenset(
    {
        errorcode.ER_LOCK_WAIT_TIMEOUT,
        errorcode.ER_LOCK_DEADLOCK,
        errorcode.CR_SERVER_LOST,
        errorcode.CR_SERVER_GONE_ERROR,
        errorcode.CR_CONN_HOST_ERROR,
    }
)


def is_transient(exc: mysql.connector.Error) -> bool:
    if isinstance(exc, (mysql.connector.errors.OperationalError, mysql.connector.errors.InterfaceError)):
        return True
    return getattr(exc, "errno", None) in TRANSIENT_ERRNOS


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor) inside one transaction.

    Commits on success and rolls back on any error. Driver errors worth a retry
    are re-raised as TransientStorageError.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        logger.warning("database unavailable: %s", exc)
        raise TransientStorageError("Database is unavailable, try again") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _rollback_quietly(conn)
        if is_transient(exc):
            logger.warning("transient storage error (errno=%s): %s", getattr(exc, "errno", None), exc)
            raise TransientStorageError("Storage is busy, try again") from exc
        raise
    except BaseException:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


def _rollback_quietly(conn) -> None:
    # A failed rollback must not mask the statement error; the server drops the transaction with the connection.
    try:
        conn.rollback()
    except mysql.connector.Error as exc:
        logger.warning("rollback failed: %s", exc)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
