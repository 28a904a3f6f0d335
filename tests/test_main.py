"""Tests for the HTTP adapter in main.py."""

import time

import pytest
from fastapi.testclient import TestClient

import main
from world import reset_session


@pytest.fixture
def client():
    reset_session(main.session)
    with TestClient(main.app) as c:
        yield c
    reset_session(main.session)


def human_id():
    return main.session.human_id


class TestReadEndpoints:

    def test_health(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_state_snapshot(self, client):
        data = client.get("/state").json()
        assert data["turn"] == 0
        assert data["human_id"] == human_id()
        assert len(data["territories"]) == len(main.session.territories)
        assert data["territories"][0]["id"] == "A"
        assert data["diplomacy"] is None
        assert data["outcome"] is None
        assert "bots" in data["ai_state"]

    def test_unknown_ids_are_404(self, client):
        assert client.get("/territory/ZZZ").status_code == 404
        assert client.get("/player/ghost").status_code == 404
        assert client.get("/candidates/ghost").status_code == 404
        assert client.get("/territory/ZZZ").json() == {"error": "not found"}

    def test_territory_detail(self, client):
        data = client.get("/territory/A").json()
        assert data["owner"] is None
        assert data["owner_name"] is None
        assert {n["id"] for n in data["neighbors"]} == set(main.session.territories["A"].adjacent_to)

    def test_candidates_start_with_every_neutral(self, client):
        data = client.get(f"/candidates/{human_id()}").json()
        assert data == list(main.session.territories)

    def test_upgrades_listing(self, client):
        data = client.get("/upgrades").json()
        assert len(data) == 5
        assert {u["status"] for u in data} <= {"locked", "unaffordable", "available"}


class TestWriteEndpoints:

    def test_conquer(self, client):
        data = client.post("/conquer/A").json()
        assert data["result"]["success"] is True
        assert data["result"]["points_gained"] == 10
        player = client.get(f"/player/{human_id()}").json()
        assert player["conquered"] == ["A"]
        assert player["points"] == 10
        detail = client.get("/territory/A").json()
        assert detail["owner"] == human_id()
        assert detail["history"][0]["kind"] == "conquest"

    def test_failed_conquer_reported_in_body(self, client):
        client.post("/conquer/A")
        resp = client.post("/conquer/A")
        assert resp.status_code == 200
        assert resp.json()["result"]["success"] is False

    def test_turn(self, client):
        data = client.post("/turn").json()
        assert data["turn"] == 0
        assert len(data["moves"]) == sum(1 for p in main.session.players.values() if p.is_bot)
        assert data["resources_collected"] is True
        assert client.get("/state").json()["turn"] == 1

    def test_locked_upgrade(self, client):
        data = client.post("/upgrade/diplomatic_relations").json()
        assert data["success"] is False

    def test_rankings_and_history(self, client):
        client.post("/conquer/A")
        ranking = client.get("/rankings").json()
        assert ranking[0]["id"] == human_id()
        history = client.get("/history").json()
        assert history[-1]["participants"] == [human_id()]

    def test_game_over_blocks_moves(self, client):
        main.session.players[human_id()].points = 300
        data = client.post("/conquer/A").json()
        assert data["outcome"]["kind"] == "victory"
        assert client.post("/conquer/B").status_code == 409

    def test_reset(self, client):
        client.post("/conquer/A")
        client.post("/turn")
        data = client.post("/reset").json()
        assert data["turn"] == 0
        assert all(t["owner"] is None for t in data["territories"])
        assert all(p["points"] == 0 for p in data["players"])

    def test_game_over_blocks_upgrades(self, client):
        human = main.session.players[human_id()]
        human.points = 300
        client.post("/conquer/A")
        before = human.resources.copy()
        strength = human.strength
        resp = client.post("/upgrade/military_training")
        assert resp.status_code == 409
        assert resp.json() == {"error": "game over"}
        assert human.resources == before
        assert human.strength == strength


class TestAutoAdvance:

    def test_loop_survives_game_over_and_reset(self, monkeypatch):
        monkeypatch.setattr(main, "AUTO_ADVANCE", True)
        monkeypatch.setattr(main, "TURN_DELAY", 0.01)
        reset_session(main.session)
        main.session.players[human_id()].points = 300
        try:
            with TestClient(main.app) as c:
                time.sleep(0.3)
                assert main.session.outcome is not None
                assert main.session.outcome.kind == "victory"

                c.post("/reset")
                time.sleep(0.3)
                assert main.session.turn > 0
                assert not main._turn_task.done()
        finally:
            reset_session(main.session)
