from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import format_duration, to_rfc3339
from ..core.enums import Direction
from ..members.model import Member


@dataclass(frozen=True)
class ToggleResult:
    direction: Direction
    member: Member
    at: datetime
    prior_start: Optional[datetime] = None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.prior_start is None:
            return None
        return self.at - self.prior_start

    @property
    def message(self) -> str:
        if self.direction is Direction.IN:
            return f"Welcome, {self.member.name}!"
        return f"Goodbye, {self.member.name}! Duration: {format_duration(self.duration)}"

    def to_dict(self) -> dict:
        return {"message": self.message, "status": self.direction.value}


@dataclass(frozen=True)
class PresentEntry:
    """One open visit. ``member`` is None if the tag left the directory."""

    tag_id: str
    start_time: datetime
    member: Optional[Member] = None

    @property
    def name(self) -> str:
        return self.member.name if self.member else self.tag_id

    def to_dict(self) -> dict:
        return {"name": self.name, "signin_time": to_rfc3339(self.start_time)}


@dataclass(frozen=True)
class ClosedInterval:
    tag_id: str
    member_id: Optional[int]
    start_time: datetime
    end_time: datetime
    session_id: Optional[int] = None

    @property
    def persisted(self) -> bool:
        return self.session_id is not None


@dataclass(frozen=True)
class SweepFailure:
    tag_id: str
    reason: str


@dataclass(frozen=True)
class SweepResult:
    swept_at: datetime
    closed: list[ClosedInterval] = field(default_factory=list)
    failures: list[SweepFailure] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.closed)

    @property
    def message(self) -> str:
        return f"Signed out all attendees ({self.count} total)."


@dataclass(frozen=True)
class ScanEvent:
    tag_id: str
    time: datetime

    def to_dict(self) -> dict:
        return {"uid": self.tag_id, "time": to_rfc3339(self.time)}
