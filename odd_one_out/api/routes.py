from __future__ import annotations

from typing import Any
from uuid import UUID

import redis
from fastapi import APIRouter, Body, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from odd_one_out.actions import dispatch_action_async
from odd_one_out.api.deps import get_redis
from odd_one_out.api.models import GameListResponse, GameView
from odd_one_out.game_store import create_game, get_game, list_games
from odd_one_out.lock import GameBusyError
from odd_one_out.websocket_hub import hub

router = APIRouter()


@router.websocket("/ws/game/{game_id}")
async def game_updates_ws(websocket: WebSocket, game_id: UUID) -> None:
    gid = str(game_id)
    await hub.connect(gid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(gid, websocket)
    except Exception:
        await hub.disconnect(gid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/game", response_model=GameView, status_code=status.HTTP_201_CREATED)
async def create_game_route(r: redis.Redis = Depends(get_redis)) -> GameView:
    record = create_game(r=r)
    return GameView.from_record(record)


@router.get("/game", response_model=GameListResponse)
async def list_games_route(r: redis.Redis = Depends(get_redis)) -> GameListResponse:
    return GameListResponse(games=[GameView.from_record(g) for g in list_games(r=r)])


@router.get("/game/{game_id}", response_model=GameView)
async def get_game_route(game_id: UUID, r: redis.Redis = Depends(get_redis)) -> GameView:
    record = get_game(r=r, game_id=game_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return GameView.from_record(record)


@router.post("/games/{game_id}/actions/{action}", response_model=GameView)
async def action_route(
    game_id: UUID,
    action: str,
    body: dict[str, Any] | None = Body(default=None),
    r: redis.Redis = Depends(get_redis),
) -> GameView:
    if get_game(r=r, game_id=game_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    try:
        record = await dispatch_action_async(r=r, game_id=game_id, action=action, payload=body or {})
    except GameBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return GameView.from_record(record)
