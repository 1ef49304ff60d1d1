from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from ..core.exceptions import NoFilterSpecified, ValidationError
from .model import Session, SessionFilter
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionStore:
    """Durable history of completed visits.

    Every failure of the underlying repository surfaces as ``StorageError``;
    the presence engine decides whether that is fatal (it is not).
    """

    def __init__(self, sessions: SessionRepository):
        self._sessions = sessions

    def append(self, member_id: int, start_time: datetime, end_time: datetime) -> int:
        if end_time <= start_time:
            raise ValidationError("session must end after it starts")
        session_id = self._sessions.insert(member_id=member_id, start_time=start_time, end_time=end_time)
        logger.debug("Session %s recorded for member %s", session_id, member_id)
        return session_id

    def query(self, flt: SessionFilter) -> Sequence[Session]:
        if flt.limit is not None and flt.limit <= 0:
            raise ValidationError("limit must be positive")
        if flt.since is not None and flt.until is not None and flt.since > flt.until:
            raise ValidationError("'from' must not be after 'to'")
        return self._sessions.find(flt)

    def delete(self, flt: SessionFilter) -> int:
        if not flt.is_bounded:
            raise NoFilterSpecified("at least one of 'from', 'to' or 'member_id' is required")
        deleted = self._sessions.delete(flt)
        logger.info(
            "Deleted %d sessions (from=%s, to=%s, member_id=%s)",
            deleted,
            flt.since,
            flt.until,
            flt.member_id,
        )
        return deleted

    def cascade_delete_for(self, member_id: int) -> int:
        return self._sessions.delete_for_member(member_id)
