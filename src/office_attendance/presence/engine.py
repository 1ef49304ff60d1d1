from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.locks import ReadWriteLock
from ..core.constants import DEFAULT_SCAN_HISTORY_SIZE
from ..core.enums import Direction
from ..core.exceptions import AlreadyPresent, NotPresent, StorageError, ValidationError
from ..members.directory import MemberDirectory
from ..members.model import Member
from ..sessions.service import SessionStore
from .model import ClosedInterval, PresentEntry, ScanEvent, SweepFailure, SweepResult, ToggleResult
from .snapshot import LiveStateSnapshot

logger = logging.getLogger(__name__)


class AttendanceEngine:
    """Single source of truth for who is in the room.

    The open-visit map (tag id -> sign-in time) lives only here and is guarded
    by a reader/writer lock. Every decide-and-write step holds the writer lock
    for its whole duration; session inserts and snapshot writes happen after
    the lock is released.

    Durable writes are best-effort: a ``StorageError`` is logged and the map
    keeps the new state. A crash between the map change and the write loses
    that write.
    """

    def __init__(
        self,
        directory: MemberDirectory,
        sessions: SessionStore,
        snapshot: LiveStateSnapshot,
        *,
        clock: Callable[[], datetime] = now_local,
        scan_history_size: int = DEFAULT_SCAN_HISTORY_SIZE,
    ):
        self._directory = directory
        self._sessions = sessions
        self._snapshot = snapshot
        self._clock = clock
        self._lock = ReadWriteLock()
        self._open: dict[str, datetime] = {}
        self._scans: deque[ScanEvent] = deque(maxlen=max(1, scan_history_size))
        self._scans_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> int:
        """Load the snapshot into the map. ``SnapshotCorrupt`` is fatal."""
        loaded = self._snapshot.load()
        with self._lock.write():
            self._open = dict(loaded)

        orphans = [tag for tag in loaded if tag not in self._directory]
        if orphans:
            logger.warning("Snapshot has %d open visits for unknown tags: %s", len(orphans), ", ".join(orphans))
        logger.info("Loaded %d current attendees from %s", len(loaded), self._snapshot.path)
        return len(loaded)

    def shutdown(self) -> None:
        self._persist_snapshot()
        logger.info("Presence engine stopped")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def toggle(self, tag_id: str, now: Optional[datetime] = None) -> ToggleResult:
        now = now or self._clock()
        member = self._directory.resolve(tag_id)

        with self._lock.write():
            prior_start = self._open.pop(tag_id, None)
            if prior_start is None:
                self._open[tag_id] = now

        if prior_start is None:
            logger.info("%s signed in", member.name)
            self._persist_snapshot()
            return ToggleResult(Direction.IN, member, now)

        self._record_session(member, tag_id, prior_start, now)
        self._persist_snapshot()
        return ToggleResult(Direction.OUT, member, now, prior_start)

    def sign_in(self, tag_id: str, now: Optional[datetime] = None) -> ToggleResult:
        now = now or self._clock()
        member = self._directory.resolve(tag_id)

        with self._lock.write():
            if tag_id in self._open:
                raise AlreadyPresent("Member already signed in")
            self._open[tag_id] = now

        logger.info("%s signed in", member.name)
        self._persist_snapshot()
        return ToggleResult(Direction.IN, member, now)

    def sign_out(self, tag_id: str, now: Optional[datetime] = None) -> ToggleResult:
        now = now or self._clock()
        member = self._directory.resolve(tag_id)

        with self._lock.write():
            prior_start = self._open.pop(tag_id, None)
            if prior_start is None:
                raise NotPresent("Member not signed in")

        self._record_session(member, tag_id, prior_start, now)
        self._persist_snapshot()
        return ToggleResult(Direction.OUT, member, now, prior_start)

    def sign_in_external(self, external_id: str, now: Optional[datetime] = None) -> ToggleResult:
        member = self._directory.resolve_by_external_id(external_id)
        return self.sign_in(member.tag_id, now)

    def sign_out_external(self, external_id: str, now: Optional[datetime] = None) -> ToggleResult:
        member = self._directory.resolve_by_external_id(external_id)
        return self.sign_out(member.tag_id, now)

    def force_sign_out_all(self, now: Optional[datetime] = None) -> SweepResult:
        """Close every open visit at ``now``.

        The map is swapped for an empty one in a single critical section, so a
        racing sign-out either wins before the swap or sees ``NotPresent``.
        Per-member storage failures are collected, never raised.
        """
        now = now or self._clock()
        with self._lock.write():
            swept = self._open
            self._open = {}

        self._persist_snapshot()

        closed: list[ClosedInterval] = []
        failures: list[SweepFailure] = []
        for tag_id, start in sorted(swept.items(), key=lambda item: item[1]):
            member = self._directory.get(tag_id)
            if member is None:
                logger.warning("Sweep: tag %s is no longer registered, no session recorded", tag_id)
                closed.append(ClosedInterval(tag_id, None, start, now))
                failures.append(SweepFailure(tag_id, "unknown member"))
                continue
            try:
                session_id = self._sessions.append(member.member_id, start, now)
            except (StorageError, ValidationError) as exc:
                logger.error("Error saving session for %s during sign-out-all: %s", member.name, exc)
                closed.append(ClosedInterval(tag_id, member.member_id, start, now))
                failures.append(SweepFailure(tag_id, str(exc)))
                continue
            closed.append(ClosedInterval(tag_id, member.member_id, start, now, session_id))

        logger.info("Signed out all attendees (%d total, %d failed to persist)", len(closed), len(failures))
        return SweepResult(swept_at=now, closed=closed, failures=failures)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_present(self, tag_id: str) -> bool:
        with self._lock.read():
            return tag_id in self._open

    def count_present(self) -> int:
        with self._lock.read():
            return len(self._open)

    def list_present(self) -> list[PresentEntry]:
        """Open visits, earliest arrival first."""
        with self._lock.read():
            entries = list(self._open.items())
        present = [PresentEntry(tag_id=tag, start_time=start, member=self._directory.get(tag)) for tag, start in entries]
        present.sort(key=lambda e: e.start_time)
        return present

    # ------------------------------------------------------------------
    # Scan log
    # ------------------------------------------------------------------
    def record_scan(self, tag_id: str, now: Optional[datetime] = None) -> ScanEvent:
        event = ScanEvent(tag_id=tag_id, time=now or self._clock())
        with self._scans_lock:
            self._scans.append(event)
        return event

    def recent_scans(self) -> list[ScanEvent]:
        """Most recent scans, newest first."""
        with self._scans_lock:
            events = list(self._scans)
        events.reverse()
        return events

    # ------------------------------------------------------------------
    # Side effects (never called with the map lock held)
    # ------------------------------------------------------------------
    def _record_session(self, member: Member, tag_id: str, start: datetime, end: datetime) -> Optional[int]:
        try:
            session_id = self._sessions.append(member.member_id, start, end)
        except (StorageError, ValidationError) as exc:
            logger.error("Could not record session for %s (%s): %s", member.name, tag_id, exc)
            return None
        logger.info("%s signed out after %s", member.name, end - start)
        return session_id

    def _persist_snapshot(self) -> None:
        with self._lock.read():
            state = dict(self._open)
        try:
            self._snapshot.save(state)
        except StorageError as exc:
            logger.error("Could not save current attendees: %s", exc)
