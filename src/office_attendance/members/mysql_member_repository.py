from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Member, MemberDraft
from .repository import MemberRepository


def _to_member(row: dict) -> Member:
    return Member(
        member_id=int(row["member_id"]),
        name=row["name"],
        tag_id=row["tag_id"],
        external_id=row["external_id"],
    )


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT member_id, name, tag_id, external_id
                FROM members
                ORDER BY member_id
                """
            )
            return [_to_member(r) for r in fetchall(cur)]

    def get_by_id(self, member_id: int) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT member_id, name, tag_id, external_id
                FROM members
                WHERE member_id=%s
                """,
                (int(member_id),),
            )
            row = fetchone(cur)
            return _to_member(row) if row else None

    def create(self, draft: MemberDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO members(name, tag_id, external_id) VALUES(%s,%s,%s)",
                (draft.name, draft.tag_id, draft.external_id),
            )
            return int(cur.lastrowid)

    def update(self, member_id: int, draft: MemberDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE members
                SET name=%s, tag_id=%s, external_id=%s
                WHERE member_id=%s
                """,
                (draft.name, draft.tag_id, draft.external_id, int(member_id)),
            )
            # MySQL reports 0 affected rows when nothing changed; look the row up instead.
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT 1 AS found FROM members WHERE member_id=%s", (int(member_id),))
            return fetchone(cur) is not None

    def delete_by_id(self, member_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM members WHERE member_id=%s", (int(member_id),))
            return cur.rowcount > 0

    def insert_ignore(self, draft: MemberDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO members(name, tag_id, external_id) VALUES(%s,%s,%s)",
                (draft.name, draft.tag_id, draft.external_id),
            )
            return cur.rowcount > 0
