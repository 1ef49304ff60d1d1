from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0, with_api_keys
from office_attendance.container import build_container
from office_attendance.core.exceptions import StorageError
from office_attendance.main import create_app


@pytest.fixture()
def app(settings, container):
    return create_app(settings, container=container)


@pytest.fixture()
def client(app):
    return app.test_client()


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_data(as_text=True) == "OK"


def test_scan_toggles_member(client, clock):
    res = client.post("/scan", json={"uid": "U1"})
    assert res.status_code == 200
    assert res.get_json() == {"message": "Welcome, Alice!", "status": "in"}

    clock.advance(minutes=90)
    res = client.post("/scan", json={"uid": "U1"})
    assert res.get_json() == {"message": "Goodbye, Alice! Duration: 1h30m0s", "status": "out"}


def test_scan_unknown_tag_is_forbidden(client):
    res = client.post("/scan", json={"uid": "NOPE"})
    assert res.status_code == 403
    assert res.get_json() == {"error": "Unknown UID"}
    assert client.get("/scan-history").get_json()[0]["uid"] == "NOPE"


@pytest.mark.parametrize("body", [None, {"uid": ""}, {"other": 1}])
def test_scan_bad_body(client, body):
    if body is None:
        res = client.post("/scan", data="not json", content_type="application/json")
    else:
        res = client.post("/scan", json=body)
    assert res.status_code == 400


def test_current_and_count(client, clock):
    client.post("/scan", json={"uid": "U2"})
    clock.advance(minutes=1)
    client.post("/scan", json={"uid": "U1"})

    current = client.get("/current").get_json()
    assert [c["name"] for c in current] == ["Bob", "Alice"]
    assert current[0]["signin_time"] == T0.isoformat()
    assert client.get("/count").get_json() == {"count": 2}


def test_discord_sign_in_and_out(client, clock):
    res = client.post("/sign-in-discord", json={"discord_id": "discord-alice"})
    assert res.get_json()["status"] == "in"

    res = client.post("/sign-in-discord", json={"discord_id": "discord-alice"})
    assert res.status_code == 409
    assert res.get_json() == {"error": "Member already signed in"}

    clock.advance(minutes=5)
    assert client.post("/sign-out-discord", json={"discord_id": "discord-alice"}).status_code == 200
    res = client.post("/sign-out-discord", json={"discord_id": "discord-alice"})
    assert res.status_code == 409
    assert res.get_json() == {"error": "Member not signed in"}

    res = client.post("/sign-in-discord", json={"discord_id": "discord-ghost"})
    assert res.status_code == 404


def test_sign_out_all(client, clock):
    client.post("/scan", json={"uid": "U1"})
    client.post("/scan", json={"uid": "U2"})
    clock.advance(hours=3)

    res = client.post("/sign-out-all")
    assert res.get_json() == {"message": "Signed out all attendees (2 total).", "count": 2, "failed": 0}
    assert client.get("/count").get_json() == {"count": 0}
    assert len(client.get("/history").get_json()) == 2


def _visit(client, clock, uid, minutes):
    client.post("/scan", json={"uid": uid})
    clock.advance(minutes=minutes)
    client.post("/scan", json={"uid": uid})


def test_history_json_and_filters(client, clock):
    _visit(client, clock, "U1", 10)
    clock.advance(days=1)
    _visit(client, clock, "U2", 20)

    rows = client.get("/history").get_json()
    assert [r["name"] for r in rows] == ["Bob", "Alice"]
    assert rows[0]["duration_seconds"] == 1200

    rows = client.get("/history?member_id=1").get_json()
    assert [r["name"] for r in rows] == ["Alice"]

    rows = client.get("/history?from=2026-02-03T00:00:00Z").get_json()
    assert [r["name"] for r in rows] == ["Bob"]

    assert len(client.get("/history?limit=1").get_json()) == 1


def test_history_rejects_bad_args(client):
    assert client.get("/history?limit=0").status_code == 400
    assert client.get("/history?limit=abc").status_code == 400
    assert client.get("/history?from=yesterday").status_code == 400


def test_history_csv(client, clock):
    _visit(client, clock, "U1", 1)
    res = client.get("/history?format=csv")
    assert res.status_code == 200
    assert res.mimetype == "text/csv"
    lines = res.get_data(as_text=True).strip().splitlines()
    assert lines[0] == "id,member_id,name,signin_time,signout_time,duration_seconds"
    assert lines[1].startswith("1,1,Alice,")
    assert lines[1].endswith(",60")


def test_delete_history(client, clock, sessions_repo):
    _visit(client, clock, "U1", 1)
    _visit(client, clock, "U2", 1)

    res = client.delete("/history")
    assert res.status_code == 400

    res = client.delete("/history?member_id=1")
    assert res.get_json() == {"deleted": 1}
    assert [s.member_id for s in sessions_repo.rows] == [2]


def test_members_crud(client):
    assert len(client.get("/members").get_json()) == 2

    res = client.post("/members", json={"name": "Cara", "uid": "U3", "discord_id": "d3"})
    assert res.status_code == 201
    cara = res.get_json()
    assert cara == {"id": 3, "name": "Cara", "uid": "U3", "discord_id": "d3"}

    assert client.post("/scan", json={"uid": "U3"}).status_code == 200

    res = client.post("/members", json={"name": "Dup", "uid": "U3", "discord_id": "d4"})
    assert res.status_code == 409

    res = client.put("/members/3", json={"name": "Cara", "uid": "U9", "discord_id": "d3"})
    assert res.status_code == 409

    assert client.delete("/members/3").status_code == 409
    client.post("/scan", json={"uid": "U3"})
    res = client.delete("/members/3")
    assert res.get_json() == {"message": "Member deleted successfully"}
    assert client.delete("/members/3").status_code == 404
    assert client.post("/scan", json={"uid": "U3"}).status_code == 403


def test_members_validation(client):
    res = client.post("/members", json={"name": "Cara", "uid": "U3"})
    assert res.status_code == 400
    assert res.get_json() == {"error": "name, uid, and discord_id are required"}


def test_export_and_import_members(client, settings):
    res = client.get("/export-members")
    assert res.get_json()["count"] == 2
    assert settings.MEMBERS_EXPORT_PATH.exists()

    res = client.post("/import-members")
    assert res.get_json()["count"] == 0


def test_cors_headers(client):
    res = client.get("/health")
    assert res.headers["Access-Control-Allow-Origin"] == "*"
    assert "X-API-Key" in res.headers["Access-Control-Allow-Headers"]


def test_api_key_required_when_configured(settings, members_repo, sessions_repo, clock):
    keyed = with_api_keys(settings, "scanner-key", "bot-key")
    container = build_container(keyed, members_repo=members_repo, sessions_repo=sessions_repo, clock=clock)
    client = create_app(keyed, container=container).test_client()

    res = client.post("/scan", json={"uid": "U1"})
    assert res.status_code == 401

    res = client.post("/scan", json={"uid": "U1"}, headers={"X-API-Key": "wrong"})
    assert res.status_code == 401

    res = client.post("/scan", json={"uid": "U1"}, headers={"X-API-Key": "bot-key"})
    assert res.status_code == 200

    assert client.get("/health").status_code == 200


def test_open_visits_survive_restart(settings, members_repo, sessions_repo, clock):
    first = build_container(settings, members_repo=members_repo, sessions_repo=sessions_repo, clock=clock)
    create_app(settings, container=first).test_client().post("/scan", json={"uid": "U1"})
    first.shutdown()

    clock.advance(hours=2)
    second = build_container(settings, members_repo=members_repo, sessions_repo=sessions_repo, clock=clock)
    client = create_app(settings, container=second).test_client()
    assert client.get("/count").get_json() == {"count": 1}

    res = client.post("/scan", json={"uid": "U1"})
    assert res.get_json()["status"] == "out"
    assert sessions_repo.rows[0].end_time - sessions_repo.rows[0].start_time == timedelta(hours=2)


def test_storage_failure_returns_500(client, sessions_repo, monkeypatch):
    def broken(flt):
        raise StorageError("connection lost")

    monkeypatch.setattr(sessions_repo, "find", broken)
    res = client.get("/history")
    assert res.status_code == 500
    assert res.get_json() == {"error": "Internal server error"}


def test_preflight_options_is_answered(client):
    res = client.open("/scan", method="OPTIONS")
    assert res.status_code == 200
    assert "POST" in res.headers["Access-Control-Allow-Methods"]


def test_history_without_limit_returns_every_session(client, sessions_repo):
    for i in range(1200):
        start = T0 - timedelta(hours=i + 1)
        sessions_repo.insert(member_id=1 + i % 2, start_time=start, end_time=start + timedelta(minutes=30))

    rows = client.get("/history").get_json()
    assert len(rows) == 1200
    assert rows[-1]["signin_time"] == (T0 - timedelta(hours=1200)).isoformat()

    lines = client.get("/history?format=csv").get_data(as_text=True).strip().splitlines()
    assert len(lines) == 1201

    assert len(client.get("/history?limit=7").get_json()) == 7
