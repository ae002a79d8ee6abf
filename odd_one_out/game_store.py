from __future__ import annotations

import logging
import random
from datetime import UTC, datetime
from uuid import UUID, uuid4

import redis

from odd_one_out.api.models import GameRecord, GameSession
from odd_one_out.config import settings_from_env
from odd_one_out.session import new_session

logger = logging.getLogger(__name__)

GAMES_SET_KEY = "oddoneout:games"
GAME_KEY_PREFIX = "oddoneout:game:"  # + {uuid}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _game_key(game_id: UUID) -> str:
    return f"{GAME_KEY_PREFIX}{game_id}"


def round_rng(*, record: GameRecord, round_number: int) -> random.Random:
    """Deterministic per-round randomness derived from the game's seed."""

    return random.Random(f"{record.seed}:{round_number}")


def save_game(*, r: redis.Redis, record: GameRecord) -> None:
    record.last_updated_at = _now()
    r.set(_game_key(record.game_id), record.model_dump_json(), ex=settings_from_env().game_ttl_seconds)


def get_game(*, r: redis.Redis, game_id: UUID) -> GameRecord | None:
    raw = r.get(_game_key(game_id))
    if not raw:
        return None
    return GameRecord.model_validate_json(raw)


def require_game(*, r: redis.Redis, game_id: UUID) -> GameRecord:
    record = get_game(r=r, game_id=game_id)
    if record is None:
        raise ValueError("Game not found")
    return record


def update_session(*, r: redis.Redis, record: GameRecord, session: GameSession) -> GameRecord:
    record.session = session
    save_game(r=r, record=record)
    return record


def create_game(*, r: redis.Redis, seed: int | None = None) -> GameRecord:
    now = _now()
    if seed is None:
        seed = random.SystemRandom().randint(1, 2**31 - 1)

    record = GameRecord(
        game_id=uuid4(),
        created_at=now,
        last_updated_at=now,
        seed=seed,
        session=new_session(),
    )
    save_game(r=r, record=record)
    r.sadd(GAMES_SET_KEY, str(record.game_id))
    logger.info("created game %s seed=%s", record.game_id, seed)
    return record


def list_games(*, r: redis.Redis) -> list[GameRecord]:
    ids = sorted(r.smembers(GAMES_SET_KEY))
    out: list[GameRecord] = []
    for sid in ids:
        try:
            gid = UUID(sid)
        except ValueError:
            continue
        record = get_game(r=r, game_id=gid)
        if record is None:
            # Expired; drop it from the index.
            r.srem(GAMES_SET_KEY, sid)
            continue
        out.append(record)
    out.sort(key=lambda g: g.created_at, reverse=True)
    return out
