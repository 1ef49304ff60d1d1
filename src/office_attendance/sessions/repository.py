from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import Session, SessionFilter


class SessionRepository(Protocol):
    def insert(self, *, member_id: int, start_time: datetime, end_time: datetime) -> int:
        raise NotImplementedError

    def find(self, flt: SessionFilter) -> Sequence[Session]:
        """Matching sessions, newest ``start_time`` first, capped at ``flt.limit``."""

        raise NotImplementedError

    def delete(self, flt: SessionFilter) -> int:
        raise NotImplementedError

    def delete_for_member(self, member_id: int) -> int:
        raise NotImplementedError
