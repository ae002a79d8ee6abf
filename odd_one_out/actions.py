from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Literal, get_args
from uuid import UUID

import redis

from odd_one_out.api.models import (
    DifficultyRequest,
    GamePhase,
    GameRecord,
    GameSession,
    SelectRequest,
    SubmitRequest,
    TileCountRequest,
)
from odd_one_out.config import memorize_duration_ms
from odd_one_out.game_store import get_game, require_game, round_rng, update_session
from odd_one_out.lock import GameBusyError, game_lock
from odd_one_out.session import (
    begin,
    expire_memorize,
    go_home,
    next_round,
    select_difficulty,
    select_tile,
    select_tile_count,
    submit_selection,
    tick,
)
from odd_one_out.timer import timers
from odd_one_out.websocket_hub import hub

logger = logging.getLogger(__name__)

ActionName = Literal["begin", "difficulty", "tile_count", "select", "submit", "next_round", "try_again", "home"]
ACTION_NAMES: frozenset[str] = frozenset(get_args(ActionName))

# Lock attempts for the memorize -> recall transition fired by the timer.
EXPIRE_ATTEMPTS = 5


def apply_action(*, record: GameRecord, action: ActionName, payload: Mapping[str, Any]) -> GameSession:
    """Map an action name + JSON payload onto the pure session transitions.

    Payloads are validated with the request models; a pydantic ValidationError is a ValueError.
    """

    session = record.session
    if action == "begin":
        return begin(session)
    if action == "difficulty":
        req = DifficultyRequest.model_validate(payload)
        return select_difficulty(session, req.difficulty)
    if action == "tile_count":
        req_count = TileCountRequest.model_validate(payload)
        rng = round_rng(record=record, round_number=session.round_number + 1)
        return select_tile_count(session, req_count.count, rng=rng)
    if action == "select":
        return select_tile(session, SelectRequest.model_validate(payload).index)
    if action == "submit":
        return submit_selection(session, SubmitRequest.model_validate(payload).index)
    if action in ("next_round", "try_again"):
        return next_round(session, rng=round_rng(record=record, round_number=session.round_number + 1))
    if action == "home":
        return go_home(session)
    raise ValueError(f"Unknown action: {action}")


async def dispatch_action_async(
    *,
    r: redis.Redis,
    game_id: UUID,
    action: str,
    payload: Mapping[str, Any] | None = None,
) -> GameRecord:
    """Entry point for the HTTP layer.

    Loads the game under its lock, applies the transition, persists it, then
    starts or cancels the memorize timer and notifies WebSocket subscribers.
    """

    if action not in ACTION_NAMES:
        raise ValueError(f"Unknown action: {action}")

    gid = str(game_id)
    async with game_lock(r=r, game_id=gid):
        record = require_game(r=r, game_id=game_id)
        before = record.session
        after = apply_action(record=record, action=action, payload=payload or {})  # type: ignore[arg-type]
        if after is not before:
            update_session(r=r, record=record, session=after)

    if after.phase != before.phase:
        logger.info("game=%s action=%s %s -> %s", gid, action, before.phase.value, after.phase.value)

    sync_memorize_timer(r=r, game_id=game_id, before=before, after=after)
    await hub.publish(gid, {"type": "game_updated", "game_id": gid, "phase": after.phase.value})
    return record


def sync_memorize_timer(*, r: redis.Redis, game_id: UUID, before: GameSession, after: GameSession) -> None:
    """Start a timer when a new memorize round begins; cancel it whenever the game leaves memorize."""

    gid = str(game_id)
    if after.phase == GamePhase.memorize:
        if before.phase != GamePhase.memorize or before.round_number != after.round_number:
            start_memorize_timer(r=r, game_id=game_id, session=after)
    else:
        timers.cancel(gid)


def start_memorize_timer(*, r: redis.Redis, game_id: UUID, session: GameSession) -> None:
    if session.difficulty is None:
        raise ValueError("Cannot time a memorize round without a difficulty")
    gid = str(game_id)
    round_number = session.round_number

    async def on_tick(seconds_left: int) -> None:
        try:
            async with game_lock(r=r, game_id=gid):
                record = get_game(r=r, game_id=game_id)
                if record is None or record.session.round_number != round_number:
                    return
                update_session(r=r, record=record, session=tick(record.session, seconds_left))
        except GameBusyError:
            logger.warning("game=%s busy; countdown %s not persisted", gid, seconds_left)
        await hub.publish(gid, {"type": "countdown", "game_id": gid, "seconds_left": seconds_left})

    async def on_complete() -> None:
        await expire_round(r=r, game_id=game_id, round_number=round_number)

    timers.start(gid, memorize_duration_ms(session.difficulty), on_tick, on_complete)


async def expire_round(
    *,
    r: redis.Redis,
    game_id: UUID,
    round_number: int,
    attempts: int = EXPIRE_ATTEMPTS,
    wait_ms: int = 2_000,
) -> GameRecord | None:
    """Apply `memorize -> recall` for `round_number`. Stale completions are ignored.

    A busy game is retried up to `attempts` times; the transition is never dropped for lock contention alone.
    """

    gid = str(game_id)
    for attempt in range(1, attempts + 1):
        try:
            async with game_lock(r=r, game_id=gid, wait_ms=wait_ms):
                record = get_game(r=r, game_id=game_id)
                if record is None:
                    return None
                session = record.session
                if session.phase != GamePhase.memorize or session.round_number != round_number:
                    logger.info(
                        "ignoring stale memorize completion game=%s round=%s (now %s/%s)",
                        gid,
                        round_number,
                        session.phase.value,
                        session.round_number,
                    )
                    return None
                update_session(r=r, record=record, session=expire_memorize(session))
            break
        except GameBusyError:
            if attempt == attempts:
                raise
            logger.warning("game=%s busy at memorize expiry; retry %s/%s", gid, attempt, attempts - 1)

    logger.info("game=%s round=%s memorize -> recall", gid, round_number)
    await hub.publish(gid, {"type": "game_updated", "game_id": gid, "phase": record.session.phase.value})
    return record
