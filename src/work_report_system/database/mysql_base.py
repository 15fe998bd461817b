from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateReportError, StorageError, TransientStorageError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Server/client error numbers that usually clear up on their own.
TRANSIENT_ERRNOS = frozenset(
    {
        errorcode.ER_LOCK_WAIT_TIMEOUT,
        errorcode.ER_LOCK_DEADLOCK,
        errorcode.ER_CON_COUNT_ERROR,
        errorcode.ER_TOO_MANY_USER_CONNECTIONS,
        errorcode.CR_CONN_HOST_ERROR,
        errorcode.CR_CONNECTION_ERROR,
        errorcode.CR_SERVER_GONE_ERROR,
        errorcode.CR_SERVER_LOST,
    }
)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def classify_mysql_error(exc: mysql.connector.Error, operation: str) -> StorageError:
    """Map a mysql-connector error onto the storage error taxonomy."""

    errno = getattr(exc, "errno", None)
    message = f"{operation} failed: {exc.msg if getattr(exc, 'msg', None) else exc}"

    if errno == errorcode.ER_DUP_ENTRY:
        return DuplicateReportError("A work report already exists for this employee on this date")
    if errno in TRANSIENT_ERRNOS:
        return TransientStorageError(message)
    if isinstance(exc, (mysql.connector.errors.OperationalError, mysql.connector.errors.InterfaceError, mysql.connector.errors.PoolError)):
        return TransientStorageError(message)
    return StorageError(message)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except mysql.connector.Error as exc:
        raise classify_mysql_error(exc, operation) from exc


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def ping(conn_factory: DatabaseConnection) -> Dict[str, Any]:
    """Round-trip a trivial query; used by the queue stats endpoint."""

    started = time.perf_counter()
    try:
        with db_cursor(conn_factory, dictionary=False) as (_, cur):
            cur.execute("SELECT 1")
            cur.fetchall()
    except mysql.connector.Error as exc:
        logger.warning("Database ping failed: %s", exc)
        return {
            "healthy": False,
            "responseTimeMs": int((time.perf_counter() - started) * 1000),
            "error": str(exc),
        }
    return {"healthy": True, "responseTimeMs": int((time.perf_counter() - started) * 1000)}
