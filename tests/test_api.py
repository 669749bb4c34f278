"""API route tests."""

import random

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.rate_limit import ChatRateLimiter
from circle.engine import SessionEngine
from circle.store import InMemorySessionStore


@pytest.fixture
def client():
    """Fresh store, seeded engine and a roomy chat limiter per test."""
    app.state.engine = SessionEngine(InMemorySessionStore(), rng=random.Random(17))
    app.state.chat_limiter = ChatRateLimiter(window_seconds=60, max_messages=100)
    return TestClient(app)


def _as(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def _create(client, user_id: str = "u1", **body) -> dict:
    r = client.post("/sessions", json=body, headers=_as(user_id))
    assert r.status_code == 200
    return r.json()


def _full_lobby(client, humans: int = 6, **body) -> str:
    created = _create(client, **body)
    for n in range(2, humans + 1):
        r = client.post("/sessions/join", json={"session_code": created["session_code"]}, headers=_as(f"u{n}"))
        assert r.status_code == 200
    return created["session_id"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_missing_identity_is_401(client):
    r = client.post("/sessions", json={})
    assert r.status_code == 401
    r = client.get("/sessions", headers={"X-User-Id": "   "})
    assert r.status_code == 401


def test_create_and_get_state(client):
    created = _create(client, max_players=8, presence_mode=False)
    sid = created["session_id"]
    r = client.get(f"/sessions/{sid}", headers=_as("u1"))
    assert r.status_code == 200
    state = r.json()
    assert state["session"]["status"] == "LOBBY"
    assert state["session"]["max_players"] == 8
    assert state["session"]["presence_mode"] is False
    assert state["me"]["is_host"] is True
    assert state["me"]["seat_no"] == 1
    assert len(state["events"]) == 4
    assert state["counts"]["total_players"] == 1


def test_create_validation(client):
    r = client.post("/sessions", json={"max_players": 3}, headers=_as("u1"))
    assert r.status_code == 422
    r = client.post("/sessions", json={"voting_chat_mode": "loud"}, headers=_as("u1"))
    assert r.status_code == 422


def test_error_mapping(client):
    sid = _full_lobby(client, humans=2)
    # Not seated
    r = client.get(f"/sessions/{sid}", headers=_as("stranger"))
    assert r.status_code == 403
    # Unknown session
    r = client.get("/sessions/does-not-exist", headers=_as("u1"))
    assert r.status_code == 404
    # Too few players
    r = client.post(f"/sessions/{sid}/start", headers=_as("u1"))
    assert r.status_code == 400
    assert r.json()["kind"] == "capacity"
    # Host only
    r = client.post(f"/sessions/{sid}/ai-players", json={}, headers=_as("u2"))
    assert r.status_code == 403
    # Wrong phase
    r = client.post(f"/sessions/{sid}/resolve-night", headers=_as("u1"))
    assert r.status_code == 400
    assert r.json()["kind"] == "phase"
    # Unknown code
    r = client.post("/sessions/join", json={"session_code": "zzzzzz"}, headers=_as("u3"))
    assert r.status_code == 404


def test_ai_players_and_settings(client):
    sid = _full_lobby(client, humans=1)
    r = client.post(f"/sessions/{sid}/ai-players", json={"name": "Nova"}, headers=_as("u1"))
    assert r.status_code == 200
    assert r.json()["username"] == "Nova"
    assert r.json()["seat_no"] == 2
    r = client.post(f"/sessions/{sid}/ai-players", json={}, headers=_as("u1"))
    assert r.json()["username"] == "Echo"

    r = client.patch(f"/sessions/{sid}/settings", json={}, headers=_as("u1"))
    assert r.status_code == 200
    assert r.json()["unchanged"] is True
    r = client.patch(f"/sessions/{sid}/settings", json={"voting_chat_mode": "open_short"}, headers=_as("u1"))
    assert r.status_code == 200
    state = client.get(f"/sessions/{sid}", headers=_as("u1")).json()
    assert state["session"]["voting_chat_mode"] == "open_short"


def test_list_sessions(client):
    sid = _full_lobby(client, humans=2)
    r = client.get("/sessions", headers=_as("u2"))
    assert r.status_code == 200
    data = r.json()
    assert data["lobbies"][0]["session_id"] == sid
    assert data["lobbies"][0]["player_count"] == 2
    assert data["lobbies"][0]["joined"] is True
    assert [s["id"] for s in data["my_sessions"]] == [sid]


def test_full_round_over_http(client):
    sid = _full_lobby(client, humans=6, presence_mode=False)
    r = client.post(f"/sessions/{sid}/start", headers=_as("u1"))
    assert r.status_code == 200

    states = {f"u{n}": client.get(f"/sessions/{sid}", headers=_as(f"u{n}")).json() for n in range(1, 7)}
    for state in states.values():
        assert state["session"]["status"] == "NIGHT"
        assert state["me"]["role"] is not None
        # Only own role visible
        assert sum(1 for p in state["players"] if p["role"] is not None) == 1

    by_role = {}
    for user_id, state in states.items():
        by_role.setdefault(state["me"]["role"], []).append((user_id, state["me"]["id"]))
    shadow_ids = {pid for _, pid in by_role["shadow"]}
    citizen_user, citizen_id = by_role["citizen"][0]

    # Citizens have no night action
    r = client.post(f"/sessions/{sid}/night-action", json={"target_player_id": citizen_id}, headers=_as(citizen_user))
    assert r.status_code == 400

    victim_id = next(
        p["id"] for p in states["u1"]["players"] if p["id"] not in shadow_ids and p["id"] != citizen_id
    )
    for user_id, _ in by_role["shadow"]:
        r = client.post(f"/sessions/{sid}/night-action", json={"target_player_id": victim_id}, headers=_as(user_id))
        assert r.status_code == 200

    r = client.post(f"/sessions/{sid}/resolve-night", headers=_as("u1"))
    assert r.status_code == 200
    body = r.json()
    assert body["winner"] is None
    assert body["victim_player_id"] in (victim_id, None)

    state = client.get(f"/sessions/{sid}", headers=_as(citizen_user)).json()
    assert state["session"]["status"] == "DAY"
    r = client.post(f"/sessions/{sid}/messages", json={"content": "I watched the quiet ones."}, headers=_as(citizen_user))
    assert r.status_code == 200
    assert r.json()["content"] == "I watched the quiet ones."
    r = client.post(f"/sessions/{sid}/messages", json={"content": "x" * 401}, headers=_as(citizen_user))
    assert r.status_code == 400

    r = client.post(f"/sessions/{sid}/begin-voting", headers=_as("u1"))
    assert r.status_code == 200
    r = client.post(f"/sessions/{sid}/votes", json={"target_player_id": citizen_id}, headers=_as(citizen_user))
    assert r.status_code == 400  # self vote
    r = client.post(f"/sessions/{sid}/resolve-vote", headers=_as("u1"))
    assert r.status_code == 200
    assert r.json()["tie"] is True
    assert r.json()["exiled_player_id"] is None

    state = client.get(f"/sessions/{sid}", headers=_as("u1")).json()
    assert state["session"]["status"] == "NIGHT"
    assert state["session"]["round_no"] == 2


def test_presence_mode_turn_over_http(client):
    sid = _full_lobby(client, humans=6)
    client.post(f"/sessions/{sid}/start", headers=_as("u1"))
    client.post(f"/sessions/{sid}/resolve-night", headers=_as("u1"))
    state = client.get(f"/sessions/{sid}", headers=_as("u1")).json()
    # No signals means no victim, so six alive seats always reach Day
    assert state["session"]["status"] == "DAY"
    speaker = state["session"]["current_speaker_player_id"]
    seat_one = next(p["id"] for p in state["players"] if p["seat_no"] == 1)
    assert speaker == seat_one
    r = client.post(f"/sessions/{sid}/messages", json={"content": "out of turn"}, headers=_as("u2"))
    assert r.status_code == 403
    r = client.post(f"/sessions/{sid}/advance-turn", headers=_as("u1"))
    assert r.status_code == 200
    r = client.post(f"/sessions/{sid}/advance-turn", headers=_as("u2"))
    assert r.status_code == 403


def test_chat_rate_limit(client):
    app.state.chat_limiter = ChatRateLimiter(window_seconds=60, max_messages=2)
    sid = _full_lobby(client, humans=6, presence_mode=False)
    client.post(f"/sessions/{sid}/start", headers=_as("u1"))
    client.post(f"/sessions/{sid}/resolve-night", headers=_as("u1"))
    state = client.get(f"/sessions/{sid}", headers=_as("u1")).json()
    speaker = next(
        f"u{p['seat_no']}" for p in state["players"] if p["is_alive"]
    )
    assert client.post(f"/sessions/{sid}/messages", json={"content": "one"}, headers=_as(speaker)).status_code == 200
    assert client.post(f"/sessions/{sid}/messages", json={"content": "two"}, headers=_as(speaker)).status_code == 200
    r = client.post(f"/sessions/{sid}/messages", json={"content": "three"}, headers=_as(speaker))
    assert r.status_code == 429


def test_sync_ai_route(client):
    sid = _full_lobby(client, humans=1)
    for _ in range(5):
        client.post(f"/sessions/{sid}/ai-players", json={}, headers=_as("u1"))
    assert client.post(f"/sessions/{sid}/start", headers=_as("u1")).status_code == 200
    r = client.post(f"/sessions/{sid}/sync-ai", headers=_as("u1"))
    assert r.status_code == 200
    assert r.json()["ok"] is True
    state = client.get(f"/sessions/{sid}", headers=_as("u1")).json()
    assert state["counts"]["actions_this_round"] >= 1


def test_day_lines_settings(client):
    r = client.get("/settings/day-lines")
    assert r.status_code == 200
    data = r.json()
    assert set(data) == {"shadow", "oracle", "guardian", "citizen"}
    assert all(len(lines) == 3 for lines in data.values())
