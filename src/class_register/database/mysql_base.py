from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import PersistenceError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, conn=None):
    """Yield ``(conn, cursor)``.

    When ``conn`` is given (an open transaction) the caller owns commit/rollback
    and the connection is left open; otherwise a short-lived connection is
    committed on success, rolled back on error and closed.
    """

    if conn is not None:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
        except mysql.connector.Error as exc:
            raise PersistenceError(f"MySQL operation failed: {exc}", exc) from exc
        finally:
            cur.close()
        return

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise PersistenceError(f"MySQL operation failed: {exc}", exc) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
