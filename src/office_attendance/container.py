from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any, Callable, Optional

from .common.datetime_utils import local_zone, now_local
from .core.constants import (
    DEFAULT_SCAN_HISTORY_SIZE,
    DEFAULT_SWEEP_TIME,
    MEMBERS_EXPORT_FILENAME,
    SNAPSHOT_FILENAME,
)
from .database.connection import DatabaseConnection, DBConfig
from .members.directory import MemberDirectory
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import MemberRepository
from .members.service import MemberService
from .presence.engine import AttendanceEngine
from .presence.snapshot import LiveStateSnapshot
from .presence.sweeper import SweepScheduler
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionStore


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    members_repo: MemberRepository
    sessions_repo: SessionRepository

    directory: MemberDirectory
    session_store: SessionStore
    snapshot: LiveStateSnapshot
    engine: AttendanceEngine
    member_service: MemberService
    sweeper: SweepScheduler

    clock: Callable[[], datetime]
    tz: Optional[tzinfo]
    members_export_path: Path

    def startup(self) -> None:
        """Load the directory then the snapshot; both failures are fatal."""
        self.directory.refresh()
        self.engine.start()

    def shutdown(self) -> None:
        self.sweeper.stop()
        self.engine.shutdown()


def build_container(
    settings: Any,
    *,
    members_repo: Optional[MemberRepository] = None,
    sessions_repo: Optional[SessionRepository] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Container:
    """Wire repositories, services and the presence engine from a settings module.

    Repositories default to MySQL; tests pass in-memory ones.
    """
    tz = local_zone(getattr(settings, "TIMEZONE", None))
    clock = clock or (lambda: now_local(tz))

    data_dir = Path(getattr(settings, "DATA_DIR", "data"))
    snapshot_path = Path(getattr(settings, "SNAPSHOT_PATH", None) or data_dir / SNAPSHOT_FILENAME)
    export_path = Path(getattr(settings, "MEMBERS_EXPORT_PATH", None) or data_dir / MEMBERS_EXPORT_FILENAME)

    conn = None
    if members_repo is None or sessions_repo is None:
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))
    members_repo = members_repo or MySQLMemberRepository(conn)
    sessions_repo = sessions_repo or MySQLSessionRepository(conn, tz=tz)

    directory = MemberDirectory(members_repo)
    session_store = SessionStore(sessions_repo)
    snapshot = LiveStateSnapshot(snapshot_path)
    engine = AttendanceEngine(
        directory,
        session_store,
        snapshot,
        clock=clock,
        scan_history_size=int(getattr(settings, "SCAN_HISTORY_SIZE", DEFAULT_SCAN_HISTORY_SIZE)),
    )
    member_service = MemberService(members_repo, directory, session_store, engine)
    sweeper = SweepScheduler(
        engine,
        at=getattr(settings, "SWEEP_TIME", DEFAULT_SWEEP_TIME) or DEFAULT_SWEEP_TIME,
        tz=tz,
        clock=clock,
    )

    return Container(
        conn=conn,
        members_repo=members_repo,
        sessions_repo=sessions_repo,
        directory=directory,
        session_store=session_store,
        snapshot=snapshot,
        engine=engine,
        member_service=member_service,
        sweeper=sweeper,
        clock=clock,
        tz=tz,
        members_export_path=export_path,
    )
