from __future__ import annotations

import logging
import threading
from typing import Optional

from ..core.exceptions import UnknownIdentity
from .model import Member
from .repository import MemberRepository

logger = logging.getLogger(__name__)


class MemberDirectory:
    """Read-only cache of the members table, keyed by tag id.

    The presence engine resolves every scan here instead of hitting the
    database. Call ``refresh()`` after any directory mutation.
    """

    def __init__(self, members: MemberRepository):
        self._members = members
        self._lock = threading.Lock()
        self._by_tag: dict[str, Member] = {}
        self._by_external: dict[str, Member] = {}

    def refresh(self) -> int:
        """Reload the cache. Storage errors propagate (fatal at startup)."""
        rows = list(self._members.list_all())
        by_tag = {m.tag_id: m for m in rows}
        by_external: dict[str, Member] = {}
        for m in rows:
            by_external.setdefault(m.external_id, m)
        with self._lock:
            self._by_tag = by_tag
            self._by_external = by_external
        logger.debug("Member directory refreshed (%d members)", len(by_tag))
        return len(by_tag)

    def get(self, tag_id: str) -> Optional[Member]:
        with self._lock:
            return self._by_tag.get(tag_id)

    def resolve(self, tag_id: str) -> Member:
        member = self.get(tag_id)
        if member is None:
            raise UnknownIdentity(f"Unknown UID: {tag_id}")
        return member

    def resolve_by_external_id(self, external_id: str) -> Member:
        with self._lock:
            member = self._by_external.get(external_id)
        if member is None:
            raise UnknownIdentity("Member not found")
        return member

    def __contains__(self, tag_id: str) -> bool:
        return self.get(tag_id) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_tag)
