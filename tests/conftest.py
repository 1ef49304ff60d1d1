from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Optional

import pytest

from office_attendance.container import build_container
from office_attendance.core.exceptions import IntegrityViolation, StorageError
from office_attendance.members.directory import MemberDirectory
from office_attendance.members.model import Member, MemberDraft
from office_attendance.presence.engine import AttendanceEngine
from office_attendance.presence.snapshot import LiveStateSnapshot
from office_attendance.sessions.model import Session, SessionFilter
from office_attendance.sessions.service import SessionStore

T0 = datetime(2026, 2, 2, 9, 0, 0, tzinfo=timezone.utc)


class InMemoryMembers:
    def __init__(self, members: Optional[list[Member]] = None):
        self._rows: dict[int, Member] = {m.member_id: m for m in members or []}
        self._id = max(self._rows, default=0)

    def list_all(self):
        return [self._rows[k] for k in sorted(self._rows)]

    def get_by_id(self, member_id: int) -> Optional[Member]:
        return self._rows.get(member_id)

    def create(self, draft: MemberDraft) -> int:
        if any(m.tag_id == draft.tag_id for m in self._rows.values()):
            raise IntegrityViolation("Duplicate entry for key 'uq_members_tag'")
        self._id += 1
        self._rows[self._id] = Member(self._id, draft.name, draft.tag_id, draft.external_id)
        return self._id

    def update(self, member_id: int, draft: MemberDraft) -> bool:
        if member_id not in self._rows:
            return False
        if any(m.tag_id == draft.tag_id and k != member_id for k, m in self._rows.items()):
            raise IntegrityViolation("Duplicate entry for key 'uq_members_tag'")
        self._rows[member_id] = Member(member_id, draft.name, draft.tag_id, draft.external_id)
        return True

    def delete_by_id(self, member_id: int) -> bool:
        return self._rows.pop(member_id, None) is not None

    def insert_ignore(self, draft: MemberDraft) -> bool:
        try:
            self.create(draft)
        except IntegrityViolation:
            return False
        return True


class InMemorySessions:
    """Session repository double; set ``fail_for`` to make inserts fail per member."""

    def __init__(self, members: Optional[InMemoryMembers] = None):
        self._members = members
        self._rows: list[Session] = []
        self._id = 0
        self.fail_for: set[int] = set()
        self._lock = threading.Lock()

    @property
    def rows(self) -> list[Session]:
        return list(self._rows)

    def insert(self, *, member_id: int, start_time: datetime, end_time: datetime) -> int:
        if member_id in self.fail_for:
            raise StorageError("disk I/O error")
        with self._lock:
            self._id += 1
            session_id = self._id
        name = None
        if self._members is not None:
            member = self._members.get_by_id(member_id)
            name = member.name if member else None
        self._rows.append(Session(session_id, member_id, name, start_time, end_time))
        return session_id

    def _matches(self, s: Session, flt: SessionFilter) -> bool:
        if flt.since is not None and s.start_time < flt.since:
            return False
        if flt.until is not None and s.start_time > flt.until:
            return False
        if flt.member_id is not None and s.member_id != flt.member_id:
            return False
        return True

    def find(self, flt: SessionFilter):
        items = [s for s in self._rows if self._matches(s, flt)]
        items.sort(key=lambda s: (s.start_time, s.session_id), reverse=True)
        return items[: flt.limit] if flt.limit is not None else items

    def delete(self, flt: SessionFilter) -> int:
        keep = [s for s in self._rows if not self._matches(s, flt)]
        deleted = len(self._rows) - len(keep)
        self._rows = keep
        return deleted

    def delete_for_member(self, member_id: int) -> int:
        return self.delete(SessionFilter(member_id=member_id))


class FailingSnapshot(LiveStateSnapshot):
    def save(self, state) -> None:
        raise StorageError("read-only file system")


class Clock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def alice() -> Member:
    return Member(member_id=1, name="Alice", tag_id="U1", external_id="discord-alice")


@pytest.fixture()
def bob() -> Member:
    return Member(member_id=2, name="Bob", tag_id="U2", external_id="discord-bob")


@pytest.fixture()
def members_repo(alice, bob) -> InMemoryMembers:
    return InMemoryMembers([alice, bob])


@pytest.fixture()
def sessions_repo(members_repo) -> InMemorySessions:
    return InMemorySessions(members_repo)


@pytest.fixture()
def directory(members_repo) -> MemberDirectory:
    d = MemberDirectory(members_repo)
    d.refresh()
    return d


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def snapshot(tmp_path) -> LiveStateSnapshot:
    return LiveStateSnapshot(tmp_path / "current_attendees.json")


@pytest.fixture()
def engine(directory, sessions_repo, snapshot, clock) -> AttendanceEngine:
    eng = AttendanceEngine(directory, SessionStore(sessions_repo), snapshot, clock=clock)
    eng.start()
    return eng


@pytest.fixture()
def settings(tmp_path):
    return SimpleNamespace(
        DEBUG=False,
        TESTING=True,
        AUTO_INIT_DB=False,
        SWEEPER_ENABLED=False,
        API_KEYS=frozenset(),
        ALLOWED_ORIGINS="*",
        TIMEZONE=None,
        DATA_DIR=tmp_path,
        SNAPSHOT_PATH=tmp_path / "current_attendees.json",
        MEMBERS_EXPORT_PATH=tmp_path / "members.json",
        SCAN_HISTORY_SIZE=10,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture()
def container(settings, members_repo, sessions_repo, clock):
    return build_container(settings, members_repo=members_repo, sessions_repo=sessions_repo, clock=clock)


def with_api_keys(settings, *keys: str):
    return replace_ns(settings, API_KEYS=frozenset(keys))


def replace_ns(ns: SimpleNamespace, **changes) -> SimpleNamespace:
    merged = dict(vars(ns))
    merged.update(changes)
    return SimpleNamespace(**merged)
