from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis


class GameBusyError(ValueError):
    pass


def lock_key(game_id: str) -> str:
    return f"lock:oddoneout:{game_id}"


@asynccontextmanager
async def game_lock(
    *,
    r: redis.Redis,
    game_id: str,
    ttl_ms: int = 5_000,
    wait_ms: int = 500,
    poll_ms: int = 5,
) -> AsyncIterator[None]:
    """Best-effort per-game lock.

    Serializes player actions and timer completions for one game. While another
    holder has it, polls with `asyncio.sleep` so the event loop keeps serving
    other games; gives up with GameBusyError after `wait_ms`.
    """

    key = lock_key(game_id)
    deadline = time.monotonic() + wait_ms / 1000
    while not r.set(key, "1", nx=True, px=ttl_ms):
        if time.monotonic() >= deadline:
            raise GameBusyError("Game is busy")
        await asyncio.sleep(poll_ms / 1000)
    try:
        yield
    finally:
        r.delete(key)
