from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class GameWebSocketHub:
    """In-process WebSocket fan-out keyed by game_id.

    Clients subscribe with `connect(game_id, websocket)` and receive every
    `publish(game_id, payload)`: `game_updated` after each transition and
    `countdown` on each memorize timer tick. Payloads are JSON-serializable dicts.
    """

    def __init__(self) -> None:
        self._by_game: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, game_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_game[game_id].add(websocket)

    async def disconnect(self, game_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_game.get(game_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_game.pop(game_id, None)

    async def publish(self, game_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_game.get(game_id, set()))

        stale: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.debug("dropping websocket for game=%s", game_id, exc_info=True)
                stale.append(ws)

        if stale:
            async with self._lock:
                for ws in stale:
                    self._by_game.get(game_id, set()).discard(ws)


hub = GameWebSocketHub()
