"""HTTP surface tests using FastAPI's TestClient."""
import json

import pytest
from fastapi.testclient import TestClient

import server.app as server_app
from server.app import GAMES, app, seed_for
from server.config import Settings


def use_backend(backend="local", **overrides):
    server_app.configure(Settings(agent_backend=backend, _env_file=None, **overrides))


@pytest.fixture
def client():
    GAMES.clear()
    use_backend()
    with TestClient(app) as c:
        yield c
    GAMES.clear()


def create(client, **body):
    resp = client.post("/games", json={"seed": 7, "grid_size": 12, "max_turns": 5, **body})
    assert resp.status_code == 200
    return resp.json()["game_id"]


class TestGames:
    def test_create_and_fetch(self, client):
        resp = client.post("/games", json={"seed": 7, "grid_size": 12})
        body = resp.json()
        assert body["seed"] == 7
        assert body["civs"] == ["rome", "egypt", "mongolia"]

        state = client.get(f"/games/{body['game_id']}").json()
        assert state["game_id"] == body["game_id"]
        assert state["turn"] == 1
        assert state["phase"] == "idle"
        assert len(state["grid"]) == 12

    def test_subset_of_civs(self, client):
        gid = create(client, civs=["egypt", "rome"])
        assert client.get(f"/games/{gid}").json()["turn_order"] == ["egypt", "rome"]

    def test_unknown_civ(self, client):
        resp = client.post("/games", json={"civs": ["rome", "atlantis"]})
        assert resp.status_code == 400

    def test_duplicate_civ(self, client):
        resp = client.post("/games", json={"civs": ["rome", "rome", "egypt"]})
        assert resp.status_code == 400
        assert GAMES == {}

    def test_list(self, client):
        gid = create(client)
        assert client.get("/games").json() == [{"game_id": gid, "turn": 1, "winner": None, "civs": 3}]

    def test_missing_game(self, client):
        assert client.get("/games/nope").status_code == 404
        assert client.get("/games/nope/summaries").status_code == 404
        assert client.get("/games/nope/replay").status_code == 404


class TestAdvance:
    def test_local_backend_turn(self, client):
        gid = create(client)
        resp = client.post(f"/api/game/{gid}/advance")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "turn_processed"
        assert body["used_fallback"] is True
        assert body["state"]["turn"] == 2
        assert body["state"]["current_narration"].startswith("Turn 1 passes.")

        summaries = client.get(f"/games/{gid}/summaries").json()
        assert summaries["turn"] == 2
        assert [s["civ_id"] for s in summaries["summaries"]] == ["rome", "egypt", "mongolia"]
        assert [e["tag"] for e in summaries["phase_events"]] == ["turn_complete"]

    def test_random_backend_turn(self, client):
        use_backend("random")
        gid = create(client)
        body = client.post(f"/api/game/{gid}/advance").json()
        assert body["used_fallback"] is False

        tags = [e["tag"] for e in client.get(f"/games/{gid}/summaries").json()["phase_events"]]
        assert tags == [
            "diplomacy_start", "diplomacy_complete", "planning_start", "planning_complete",
            "resolution_start", "resolution_complete", "narration_start", "narration_complete",
            "turn_complete",
        ]

    def test_unknown_id_creates_game(self, client):
        body = client.post("/api/game/42/advance").json()
        assert body["state"]["id"] == "42"
        assert GAMES["42"].seed == 42

    def test_finished_game(self, client):
        gid = create(client)
        GAMES[gid].state.winner = "rome"
        body = client.post(f"/api/game/{gid}/advance").json()
        assert body["status"] == "finished"
        assert body["state"]["turn"] == 1

    def test_replay_in_memory(self, client):
        gid = create(client)
        client.post(f"/api/game/{gid}/advance")
        replay = client.get(f"/games/{gid}/replay").json()
        assert replay["seed"] == 7
        assert [t["turn"] for t in replay["turns"]] == [0, 1]

    def test_replay_written_to_disk(self, client, tmp_path):
        use_backend(replay_dir=tmp_path)
        gid = create(client)
        client.post(f"/api/game/{gid}/advance")

        saved = json.loads((tmp_path / f"{gid}.json").read_text())
        assert saved["state"]["turn"] == 2

        del GAMES[gid]
        assert client.get(f"/games/{gid}/replay").json()["seed"] == 7


class TestSeedFor:
    def test_numeric(self):
        assert seed_for("1234") == 1234

    def test_hashed(self):
        assert seed_for("abc") == 96354
        assert seed_for("abc") == seed_for("abc")
        assert seed_for("a-much-longer-game-name") >= 0
