from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_rfc3339


@dataclass(frozen=True)
class Session:
    """A completed visit (sign-in plus sign-out), as stored."""

    session_id: int
    member_id: int
    member_name: Optional[str]
    start_time: datetime
    end_time: datetime

    @property
    def duration_seconds(self) -> int:
        return int((self.end_time - self.start_time).total_seconds())

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "member_id": self.member_id,
            "name": self.member_name,
            "signin_time": to_rfc3339(self.start_time),
            "signout_time": to_rfc3339(self.end_time),
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class SessionFilter:
    """Query/delete bounds. ``since``/``until`` are inclusive on ``start_time``."""

    since: Optional[datetime] = None
    until: Optional[datetime] = None
    member_id: Optional[int] = None
    limit: Optional[int] = None

    @property
    def is_bounded(self) -> bool:
        return self.since is not None or self.until is not None or self.member_id is not None
