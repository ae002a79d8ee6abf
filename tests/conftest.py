from __future__ import annotations

from collections.abc import Generator
from typing import Any

import fakeredis
import pytest
from fastapi.testclient import TestClient


class ScriptedRandom:
    """Stand-in for random.Random that replays fixed choices.

    `sample` returns `original`; `randrange` returns `index`; `randint` pops from
    `candidates`; `shuffle` applies `permutation` (new position i takes old item permutation[i]).
    """

    def __init__(self, *, original: list[int], index: int, candidates: list[int], permutation: list[int]) -> None:
        self.original = original
        self.index = index
        self.candidates = list(candidates)
        self.permutation = permutation
        self.randint_calls = 0

    def sample(self, population: Any, k: int) -> list[int]:
        assert k == len(self.original)
        return list(self.original)

    def randrange(self, stop: int) -> int:
        assert 0 <= self.index < stop
        return self.index

    def randint(self, a: int, b: int) -> int:
        self.randint_calls += 1
        return self.candidates.pop(0)

    def choice(self, seq: Any) -> Any:
        return seq[0]

    def shuffle(self, items: list[int]) -> None:
        items[:] = [items[i] for i in self.permutation]


@pytest.fixture()
def scripted_rng() -> ScriptedRandom:
    # original=[3,17,42,88], overwrite index 2; 17 is rejected (already shown) before 55 is accepted.
    return ScriptedRandom(original=[3, 17, 42, 88], index=2, candidates=[17, 55], permutation=[3, 2, 1, 0])


@pytest.fixture()
def fast_memorize(monkeypatch: pytest.MonkeyPatch) -> None:
    """Shrink every memorize phase to 50ms so HTTP tests reach recall quickly."""

    import odd_one_out.actions as actions

    monkeypatch.setattr(actions, "memorize_duration_ms", lambda difficulty: 50)


@pytest.fixture()
def client_and_redis() -> Generator[tuple[TestClient, fakeredis.FakeRedis], None, None]:
    from odd_one_out.api.deps import get_redis
    from odd_one_out.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
