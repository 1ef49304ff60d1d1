from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Member, MemberDraft


class MemberRepository(Protocol):
    """Repository interface for the member directory table.

    Services depend on this protocol, never on a concrete database.
    """

    def list_all(self) -> Sequence[Member]:
        raise NotImplementedError

    def get_by_id(self, member_id: int) -> Optional[Member]:
        raise NotImplementedError

    def create(self, draft: MemberDraft) -> int:
        """Insert a member; raises ``IntegrityViolation`` on a duplicate tag."""

        raise NotImplementedError

    def update(self, member_id: int, draft: MemberDraft) -> bool:
        raise NotImplementedError

    def delete_by_id(self, member_id: int) -> bool:
        raise NotImplementedError

    def insert_ignore(self, draft: MemberDraft) -> bool:
        """Insert unless the tag already exists. Returns True when a row was added."""

        raise NotImplementedError
