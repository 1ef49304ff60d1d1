from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional, Sequence

from ..common.datetime_utils import from_db, to_db
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, where_clause
from .model import Session, SessionFilter
from .repository import SessionRepository


def _filter_clauses(flt: SessionFilter, *, prefix: str = "") -> list[tuple[str, object]]:
    clauses: list[tuple[str, object]] = []
    if flt.since is not None:
        clauses.append((f"{prefix}start_time >= %s", to_db(flt.since)))
    if flt.until is not None:
        clauses.append((f"{prefix}start_time <= %s", to_db(flt.until)))
    if flt.member_id is not None:
        clauses.append((f"{prefix}member_id = %s", int(flt.member_id)))
    return clauses


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, tz: Optional[tzinfo] = None):
        self._conn_factory = conn_factory
        self._tz = tz

    def insert(self, *, member_id: int, start_time: datetime, end_time: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO sessions(member_id, start_time, end_time) VALUES(%s,%s,%s)",
                (int(member_id), to_db(start_time), to_db(end_time)),
            )
            return int(cur.lastrowid)

    def find(self, flt: SessionFilter) -> Sequence[Session]:
        where, params = where_clause(_filter_clauses(flt, prefix="s."))
        limit_sql = ""
        if flt.limit is not None:
            limit_sql = "LIMIT %s"
            params = params + (int(flt.limit),)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT s.session_id, s.member_id, m.name, s.start_time, s.end_time
                FROM sessions s
                LEFT JOIN members m ON m.member_id = s.member_id
                {where}
                ORDER BY s.start_time DESC, s.session_id DESC
                {limit_sql}
                """,
                params,
            )
            return [
                Session(
                    session_id=int(r["session_id"]),
                    member_id=int(r["member_id"]),
                    member_name=r.get("name"),
                    start_time=from_db(r["start_time"], self._tz),
                    end_time=from_db(r["end_time"], self._tz),
                )
                for r in fetchall(cur)
            ]

    def delete(self, flt: SessionFilter) -> int:
        where, params = where_clause(_filter_clauses(flt))
        if not where:
            # SessionStore refuses unbounded deletes before we get here.
            raise ValueError("refusing to delete sessions without a WHERE clause")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM sessions {where}", params)
            return int(cur.rowcount)

    def delete_for_member(self, member_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sessions WHERE member_id=%s", (int(member_id),))
            return int(cur.rowcount)
