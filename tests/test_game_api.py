from __future__ import annotations

import time
from uuid import UUID

import fakeredis
import pytest
from fastapi.testclient import TestClient

from odd_one_out.game_store import get_game
from odd_one_out.timer import timers


def _act(client: TestClient, gid: str, action: str, body: dict | None = None) -> dict:
    resp = client.post(f"/games/{gid}/actions/{action}", json=body or {})
    assert resp.status_code == 200, resp.text
    return resp.json()


def _wait_for_phase(client: TestClient, gid: str, phase: str, timeout: float = 3.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        data = client.get(f"/game/{gid}").json()
        if data["phase"] == phase or time.monotonic() > deadline:
            return data
        time.sleep(0.02)


def _changed_index(r: fakeredis.FakeRedis, gid: str) -> int:
    record = get_game(r=r, game_id=UUID(gid))
    assert record is not None and record.session.round is not None
    return record.session.round.changed_index


def _to_recall(client: TestClient, difficulty: str = "easy", count: int = 4) -> str:
    gid = client.post("/game").json()["game_id"]
    _act(client, gid, "begin")
    _act(client, gid, "difficulty", {"difficulty": difficulty})
    _act(client, gid, "tile_count", {"count": count})
    data = _wait_for_phase(client, gid, "recall")
    assert data["phase"] == "recall"
    return gid


def test_healthcheck_and_info(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/info").json()["name"] == "odd-one-out"


def test_create_and_list_games(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    resp = client.post("/game")
    assert resp.status_code == 201
    data = resp.json()
    assert data["phase"] == "start"
    assert data["total_score"] == 0
    assert data["win_threshold"] == 100

    listed = client.get("/game").json()["games"]
    assert [g["game_id"] for g in listed] == [data["game_id"]]


def test_unknown_game_is_404(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.get(f"/game/{missing}").status_code == 404
    assert client.post(f"/games/{missing}/actions/begin", json={}).status_code == 404


def test_unknown_action_and_bad_payload_are_422(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    gid = client.post("/game").json()["game_id"]
    assert client.post(f"/games/{gid}/actions/cheat", json={}).status_code == 422

    _act(client, gid, "begin")
    resp = client.post(f"/games/{gid}/actions/difficulty", json={"difficulty": "extreme"})
    assert resp.status_code == 422
    assert client.get(f"/game/{gid}").json()["phase"] == "difficulty"


@pytest.mark.usefixtures("fast_memorize")
def test_correct_pick_wins_round_then_next_round(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    gid = client.post("/game").json()["game_id"]

    _act(client, gid, "begin")
    data = _act(client, gid, "difficulty", {"difficulty": "easy"})
    assert data["phase"] == "number_selection"

    data = _act(client, gid, "tile_count", {"count": 4})
    assert data["phase"] == "memorize"
    assert len(data["displayed"]) == 4
    assert data["feedback"] == "Observe the numbers!"
    # The answer stays hidden until the round is evaluated.
    assert data["changed_index"] is None

    data = _wait_for_phase(client, gid, "recall")
    assert data["phase"] == "recall"
    assert data["feedback"] == "Find the changed number!"
    assert data["changed_index"] is None

    data = _act(client, gid, "submit")
    assert data["phase"] == "recall"
    assert data["feedback"] == "Please select a tile!"

    idx = _changed_index(r, gid)
    data = _act(client, gid, "select", {"index": idx})
    assert data["selection"] == idx
    data = _act(client, gid, "submit")
    assert data["phase"] == "round_win"
    assert data["total_score"] == 20
    assert data["round_score"] == 20
    assert data["changed_index"] == idx
    assert data["follow_ups"] == ["home", "next_round"]

    data = _act(client, gid, "next_round")
    assert data["phase"] == "memorize"
    assert data["total_score"] == 20
    assert data["selection"] is None
    assert data["round_number"] == 2


@pytest.mark.usefixtures("fast_memorize")
def test_wrong_pick_is_game_over(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    gid = _to_recall(client, difficulty="medium", count=9)

    wrong = (_changed_index(r, gid) + 1) % 9
    data = _act(client, gid, "submit", {"index": wrong})
    assert data["phase"] == "game_over"
    assert data["total_score"] == 0
    assert data["message"] == f"Game Over! The changed tile was: {data['changed_value']}"
    assert data["follow_ups"] == ["home", "try_again"]

    data = _act(client, gid, "try_again")
    assert data["phase"] == "memorize"
    assert data["tile_count"] == 9


@pytest.mark.usefixtures("fast_memorize")
def test_five_correct_rounds_is_overall_win(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    gid = _to_recall(client)

    for n in range(1, 6):
        data = _act(client, gid, "submit", {"index": _changed_index(r, gid)})
        assert data["total_score"] == 20 * n
        if n < 5:
            assert data["phase"] == "round_win"
            _act(client, gid, "next_round")
            assert _wait_for_phase(client, gid, "recall")["phase"] == "recall"

    assert data["phase"] == "overall_win"
    assert data["message"] == "You are the CHAMPION! Final Score: 100"
    assert data["follow_ups"] == ["home"]

    data = _act(client, gid, "home")
    assert data["phase"] == "start"
    assert data["total_score"] == 0


def test_home_during_memorize_cancels_timer(
    client_and_redis: tuple[TestClient, fakeredis.FakeRedis],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    import odd_one_out.actions as actions

    monkeypatch.setattr(actions, "memorize_duration_ms", lambda difficulty: 300)
    client, _ = client_and_redis
    gid = client.post("/game").json()["game_id"]
    _act(client, gid, "begin")
    _act(client, gid, "difficulty", {"difficulty": "hard"})
    _act(client, gid, "tile_count", {"count": 12})
    assert timers.get(gid) is not None

    data = _act(client, gid, "home")
    assert data["phase"] == "start"
    assert timers.get(gid) is None

    # Well past the memorize window: no stale transition to recall.
    time.sleep(0.5)
    assert client.get(f"/game/{gid}").json()["phase"] == "start"


def test_tile_count_outside_difficulty_is_rejected_with_feedback(
    client_and_redis: tuple[TestClient, fakeredis.FakeRedis],
) -> None:
    client, _ = client_and_redis
    gid = client.post("/game").json()["game_id"]
    _act(client, gid, "begin")
    _act(client, gid, "difficulty", {"difficulty": "easy"})

    data = _act(client, gid, "tile_count", {"count": 12})
    assert data["phase"] == "number_selection"
    assert data["feedback"] == "Choose between 4 and 8 tiles for easy."


def test_clicks_outside_recall_change_nothing(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    gid = client.post("/game").json()["game_id"]
    data = _act(client, gid, "select", {"index": 0})
    assert data["phase"] == "start"
    assert data["selection"] is None


@pytest.mark.usefixtures("fast_memorize")
def test_off_grid_submit_is_rejected_not_scored(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    gid = _to_recall(client)

    idx = _changed_index(r, gid)
    _act(client, gid, "select", {"index": idx})
    data = _act(client, gid, "submit", {"index": 99})
    assert data["phase"] == "recall"
    assert data["total_score"] == 0
    assert data["selection"] == idx
    assert data["feedback"] == "That tile is not on the grid."
