from __future__ import annotations

import pytest

from conftest import InMemoryMembers
from office_attendance.core.exceptions import UnknownIdentity
from office_attendance.members.directory import MemberDirectory
from office_attendance.members.model import Member


def test_empty_until_refreshed(members_repo):
    d = MemberDirectory(members_repo)
    assert len(d) == 0
    assert d.refresh() == 2
    assert "U1" in d


def test_resolve(directory, alice):
    assert directory.resolve("U1") == alice
    with pytest.raises(UnknownIdentity, match="Unknown UID: X9"):
        directory.resolve("X9")


def test_resolve_by_external_id(directory, bob):
    assert directory.resolve_by_external_id("discord-bob") == bob
    with pytest.raises(UnknownIdentity):
        directory.resolve_by_external_id("discord-nobody")


def test_refresh_drops_removed_members(directory, members_repo):
    members_repo.delete_by_id(1)
    directory.refresh()
    assert directory.get("U1") is None
    assert len(directory) == 1


def test_shared_external_id_resolves_to_first_member():
    repo = InMemoryMembers([Member(1, "A", "T1", "same"), Member(2, "B", "T2", "same")])
    d = MemberDirectory(repo)
    d.refresh()
    assert d.resolve_by_external_id("same").member_id == 1
