from __future__ import annotations

import fakeredis
import pytest
from fastapi.testclient import TestClient


def test_ws_game_updates_broadcast(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    game_id = client.post("/game").json()["game_id"]

    with client.websocket_connect(f"/ws/game/{game_id}") as ws:
        res = client.post(f"/games/{game_id}/actions/begin", json={})
        assert res.status_code == 200

        msg = ws.receive_json()
        assert msg["type"] == "game_updated"
        assert msg["game_id"] == game_id
        assert msg["phase"] == "difficulty"


@pytest.mark.usefixtures("fast_memorize")
def test_ws_receives_countdown_then_recall(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    game_id = client.post("/game").json()["game_id"]
    client.post(f"/games/{game_id}/actions/begin", json={})
    client.post(f"/games/{game_id}/actions/difficulty", json={"difficulty": "easy"})

    with client.websocket_connect(f"/ws/game/{game_id}") as ws:
        client.post(f"/games/{game_id}/actions/tile_count", json={"count": 5})

        assert ws.receive_json() == {"type": "game_updated", "game_id": game_id, "phase": "memorize"}
        assert ws.receive_json() == {"type": "countdown", "game_id": game_id, "seconds_left": 0}
        assert ws.receive_json() == {"type": "game_updated", "game_id": game_id, "phase": "recall"}
