from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mysql.connector

from ..core.exceptions import IntegrityViolation, StorageError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cursor)``; commit on success, roll back on error.

    Driver errors come out as ``StorageError`` (``IntegrityViolation`` for
    constraint failures) so services never depend on mysql-connector types.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StorageError(f"Could not connect to database: {exc}") from exc
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as exc:
        conn.rollback()
        raise IntegrityViolation(str(exc)) from exc
    except mysql.connector.Error as exc:
        conn.rollback()
        raise StorageError(str(exc)) from exc
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


def where_clause(clauses: Sequence[Tuple[str, Any]]) -> Tuple[str, tuple]:
    """Join ``(sql, param)`` pairs into a WHERE clause and its parameters."""
    if not clauses:
        return "", ()
    sql = " AND ".join(c for c, _ in clauses)
    return f"WHERE {sql}", tuple(p for _, p in clauses)
