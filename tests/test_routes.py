"""HTTP surface tests against an in-memory engine."""

import pytest
from fastapi.testclient import TestClient

from chaos_story.app import create_app
from chaos_story.repository import game_key
from chaos_story.scenes import EndingPolicy


def _headers(user_id: str, name: str | None = None) -> dict[str, str]:
    headers = {"X-User-Id": user_id}
    if name:
        headers["X-User-Name"] = name
    return headers


@pytest.fixture
def client(engine) -> TestClient:
    return TestClient(create_app(engine=engine))


def _create(client: TestClient, owner: str = "alice", **overrides) -> dict:
    body = {"title": "Quest", "premise": "A premise.", "chaos_level": 3, **overrides}
    resp = client.post("/api/games", json=body, headers=_headers(owner, owner.title()))
    assert resp.status_code == 201
    return resp.json()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_create_and_get_game(client):
    game = _create(client)
    assert game["owner_user_id"] == "alice"
    assert game["owner_display_name"] == "Alice"
    assert len(game["current_scene"]["choices"]) == 4

    resp = client.get(f"/api/games/{game['id']}")
    assert resp.status_code == 200
    assert resp.json()["id"] == game["id"]


def test_login_required_for_mutations(client):
    resp = client.post("/api/games", json={"title": "t", "premise": "p", "chaos_level": 1})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Must be logged in"}


def test_validation_error_is_400(client):
    resp = client.post(
        "/api/games", json={"title": "t", "premise": "p", "chaos_level": 9},
        headers=_headers("alice"),
    )
    assert resp.status_code == 400
    assert "between 1 and 5" in resp.json()["detail"]


def test_unknown_game_is_404(client):
    resp = client.get("/api/games/chaos_0_missing")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Game not found"}


def test_choice_then_vote(client):
    game = _create(client)
    resp = client.post(
        f"/api/games/{game['id']}/choices", json={"choice_id": "choice1"},
        headers=_headers("bob", "Bob"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["scene"]["id"] == "scene_1"
    assert body["game"]["history"][0]["author_display_name"] == "Bob"

    resp = client.post(
        f"/api/games/{game['id']}/votes", json={"history_index": 0, "vote_type": "wild"},
        headers=_headers("carol"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["history_entry"]["votes"]["wild"] == ["carol"]
    assert body["history_entry"]["chaos_score"] == 6.0
    assert body["user_profile"]["user_id"] == "carol"

    profile = client.get("/api/users/bob/profile").json()
    assert profile["total_votes_received"] == 1
    board = client.get("/api/leaderboard").json()
    assert [row["user_id"] for row in board] == ["bob"]


def test_invalid_choice_is_409(client):
    game = _create(client)
    resp = client.post(
        f"/api/games/{game['id']}/choices", json={"choice_id": "nope"},
        headers=_headers("bob"),
    )
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Invalid choice"}


def test_ended_game_is_409(make_engine):
    client = TestClient(create_app(
        engine=make_engine(ending=EndingPolicy(threshold=0, probability=1.0)),
    ))
    game = _create(client)
    url = f"/api/games/{game['id']}/choices"
    assert client.post(url, json={"choice_id": "choice1"}, headers=_headers("bob")).status_code == 200
    resp = client.post(url, json={"choice_id": "choice1"}, headers=_headers("bob"))
    assert resp.status_code == 409


def test_self_vote_is_403(client):
    game = _create(client)
    client.post(
        f"/api/games/{game['id']}/choices", json={"choice_id": "choice1"},
        headers=_headers("bob"),
    )
    resp = client.post(
        f"/api/games/{game['id']}/votes", json={"history_index": 0, "vote_type": "mild"},
        headers=_headers("bob"),
    )
    assert resp.status_code == 403


def test_bad_vote_type_is_400(client):
    game = _create(client)
    client.post(
        f"/api/games/{game['id']}/choices", json={"choice_id": "choice1"},
        headers=_headers("bob"),
    )
    resp = client.post(
        f"/api/games/{game['id']}/votes", json={"history_index": 0, "vote_type": "spicy"},
        headers=_headers("carol"),
    )
    assert resp.status_code == 400


def test_corrupt_game_is_503_without_details(client, store):
    store.data[game_key("broken")] = "{definitely not json"
    resp = client.get("/api/games/broken")
    assert resp.status_code == 503
    assert resp.json() == {"detail": "This game is unavailable"}


def test_story_tree(client):
    game = _create(client)
    url = f"/api/games/{game['id']}"
    client.post(f"{url}/choices", json={"choice_id": "choice1"}, headers=_headers("bob"))

    tree = client.get(f"{url}/tree").json()
    assert tree["is_active"] is True
    assert tree["scene_title"] == game["current_scene"]["title"]
    child = tree["children"][0]
    assert child["is_active"] is True
    assert child["author_user_id"] == "bob"


def test_no_rewind_endpoint(client):
    game = _create(client)
    resp = client.post(
        f"/api/games/{game['id']}/rewind", json={"node_id": "node_0"}, headers=_headers("alice"),
    )
    assert resp.status_code == 404


def test_user_games_and_delete(client):
    game = _create(client)
    assert client.get("/api/users/alice/games").json() == [game["id"]]

    assert client.delete(f"/api/games/{game['id']}", headers=_headers("bob")).status_code == 403
    resp = client.delete(f"/api/games/{game['id']}", headers=_headers("alice"))
    assert resp.json() == {"ok": True}
    assert client.get("/api/users/alice/games").json() == []
    assert client.get(f"/api/games/{game['id']}").status_code == 404
