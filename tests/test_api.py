"""
Tests for the HTTP layer.

Tests:
- Game lifecycle via API
- Error codes for rejected moves
- Identity header handling
- Replay endpoint
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from api.dependencies import get_engine
from core.exceptions import StoreUnavailable
from core.locks import SessionGuard
from core.session_engine import SessionEngine
from core.session_store import InMemorySessionStore


def _headers(player_id):
    return {"X-Player-Id": player_id}


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def game_id(client):
    response = client.post("/api/games", headers=_headers("P1"))
    assert response.status_code == 201
    return response.json()["game_id"]


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestGameAPI:

    def test_create_requires_identity(self, client):
        response = client.post("/api/games")
        assert response.status_code == 401

    def test_new_game_snapshot(self, client, game_id):
        response = client.get(f"/api/games/{game_id}", headers=_headers("P1"))
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "WAITING"
        assert data["board"] == "---------"
        assert data["turn"] == "P1"
        assert data["player_b"] is None
        assert data["me"] == "P1"
        assert data["role"] == "player_a"
        assert data["moves"] == []

    def test_unknown_game(self, client):
        response = client.get("/api/games/missing", headers=_headers("P1"))
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "GAME_NOT_FOUND"

    def test_join(self, client, game_id):
        response = client.post(f"/api/games/{game_id}/join", headers=_headers("P2"))
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "IN_PROGRESS"
        assert data["player_b"] == "P2"
        assert data["turn"] == "P1"
        assert data["role"] == "player_b"

    def test_auto_join_on_open(self, client, game_id):
        response = client.get(f"/api/games/{game_id}?join=true", headers=_headers("P2"))
        assert response.json()["player_b"] == "P2"

        # a third visitor only watches
        response = client.get(f"/api/games/{game_id}?join=true", headers=_headers("P3"))
        data = response.json()
        assert data["player_b"] == "P2"
        assert data["role"] == "spectator"

    def test_plain_get_does_not_join(self, client, game_id):
        response = client.get(f"/api/games/{game_id}", headers=_headers("P2"))
        assert response.json()["player_b"] is None

    def test_play_to_win(self, client, game_id):
        client.post(f"/api/games/{game_id}/join", headers=_headers("P2"))

        for player_id, position in [("P1", 0), ("P2", 3), ("P1", 1), ("P2", 4), ("P1", 2)]:
            response = client.post(
                f"/api/games/{game_id}/move",
                json={"position": position},
                headers=_headers(player_id),
            )
            assert response.status_code == 200

        data = response.json()
        assert data["board"] == "XXXOO----"
        assert data["status"] == "FINISHED"
        assert data["winner"] == "P1"
        assert data["turn"] is None
        assert [m["sequence"] for m in data["moves"]] == [1, 2, 3, 4, 5]

    @pytest.mark.parametrize("player_id,position,code", [
        ("P2", 0, "NOT_PLAYERS_TURN"),
        ("P1", 9, "INVALID_POSITION"),
        ("P1", -1, "INVALID_POSITION"),
    ])
    def test_rejected_moves(self, client, game_id, player_id, position, code):
        client.post(f"/api/games/{game_id}/join", headers=_headers("P2"))

        response = client.post(
            f"/api/games/{game_id}/move",
            json={"position": position},
            headers=_headers(player_id),
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == code

    def test_occupied_cell(self, client, game_id):
        client.post(f"/api/games/{game_id}/join", headers=_headers("P2"))
        client.post(f"/api/games/{game_id}/move", json={"position": 4}, headers=_headers("P1"))

        response = client.post(
            f"/api/games/{game_id}/move", json={"position": 4}, headers=_headers("P2")
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "CELL_OCCUPIED"

    def test_move_on_waiting_game(self, client, game_id):
        response = client.post(
            f"/api/games/{game_id}/move", json={"position": 0}, headers=_headers("P1")
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "GAME_NOT_ACTIVE"

    def test_non_integer_position(self, client, game_id):
        response = client.post(
            f"/api/games/{game_id}/move", json={"position": "4"}, headers=_headers("P1")
        )
        assert response.status_code == 422

    def test_replay(self, client, game_id):
        client.post(f"/api/games/{game_id}/join", headers=_headers("P2"))
        client.post(f"/api/games/{game_id}/move", json={"position": 4}, headers=_headers("P1"))
        client.post(f"/api/games/{game_id}/move", json={"position": 0}, headers=_headers("P2"))

        response = client.get(f"/api/games/{game_id}/replay", headers=_headers("P3"))
        assert response.status_code == 200

        frames = response.json()["frames"]
        assert [f["board"] for f in frames] == ["----X----", "O---X----"]
        assert [f["player_id"] for f in frames] == ["P1", "P2"]


class TestStoreErrors:

    class DownStore(InMemorySessionStore):
        def create(self, game):
            raise StoreUnavailable("database is down")

    def test_store_unavailable(self):
        engine = SessionEngine(self.DownStore())
        app.dependency_overrides[get_engine] = lambda: engine
        try:
            response = TestClient(app).post("/api/games", headers=_headers("P1"))
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "STORE_UNAVAILABLE"

    def test_busy_game(self, store):
        engine = SessionEngine(store, guard=SessionGuard(timeout=0.05))
        game_id = engine.create_session("P1")
        app.dependency_overrides[get_engine] = lambda: engine
        try:
            with engine.guard.hold(game_id):
                response = TestClient(app).post(
                    f"/api/games/{game_id}/join", headers=_headers("P2")
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SESSION_BUSY"
