from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Member:
    """A registered person: RFID tag plus chat-platform (Discord) id.

    The wire format keeps the scanner's field names (``uid``, ``discord_id``).
    """

    member_id: int
    name: str
    tag_id: str
    external_id: str

    def to_dict(self) -> dict:
        return {
            "id": self.member_id,
            "name": self.name,
            "uid": self.tag_id,
            "discord_id": self.external_id,
        }


@dataclass(frozen=True)
class MemberDraft:
    """Validated fields for create/update (no id yet)."""

    name: str
    tag_id: str
    external_id: str
