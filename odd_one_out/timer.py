from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], Awaitable[Any] | Any]
CompleteCallback = Callable[[], Awaitable[Any] | Any]


async def _call(cb: Callable[..., Any], *args: Any) -> None:
    result = cb(*args)
    if inspect.isawaitable(result):
        await result


def _log_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("timer completion failed", exc_info=exc)


class TimerHandle:
    """Cancelable countdown running as an asyncio task.

    Ticks once per `interval_ms` with the whole seconds left (the last tick reports 0),
    then calls `on_complete` exactly once. Cancelling stops both.
    """

    def __init__(
        self,
        duration_ms: int,
        on_tick: TickCallback,
        on_complete: CompleteCallback,
        *,
        interval_ms: int = 1000,
    ) -> None:
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.duration_ms = duration_ms
        self.interval_ms = interval_ms
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._task: asyncio.Task[None] = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(_log_failure)

    async def _run(self) -> None:
        remaining_ms = self.duration_ms
        while remaining_ms > 0:
            step = min(self.interval_ms, remaining_ms)
            await asyncio.sleep(step / 1000)
            remaining_ms -= step
            seconds_left = math.ceil(remaining_ms / 1000)
            try:
                await _call(self._on_tick, seconds_left)
            except Exception:
                # A failed tick only loses one countdown update; completion must still fire.
                logger.exception("timer tick failed seconds_left=%s", seconds_left)
        await _call(self._on_complete)

    def add_done_callback(self, fn: Callable[["TimerHandle"], Any]) -> None:
        self._task.add_done_callback(lambda _task: fn(self))

    def cancel(self) -> bool:
        """Cancel pending ticks and completion. Returns False if the timer already finished."""

        if self._task.done():
            return False
        # Callbacks run inside the task; cancelling from there would abort the completion itself.
        if self._task is asyncio.current_task():
            return False
        return self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    async def wait(self) -> None:
        """Wait for the timer to finish or be cancelled."""

        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


def start_timer(
    duration_ms: int,
    on_tick: TickCallback,
    on_complete: CompleteCallback,
    *,
    interval_ms: int = 1000,
) -> TimerHandle:
    """Start a countdown on the running event loop and return its cancel handle."""

    return TimerHandle(duration_ms, on_tick, on_complete, interval_ms=interval_ms)


class MemorizeTimerRegistry:
    """At most one live memorize timer per game_id.

    Starting a timer for a game cancels the previous one first, so two rounds can
    never race to apply `memorize -> recall` to the same session.
    """

    def __init__(self) -> None:
        self._by_game: dict[str, TimerHandle] = {}

    def start(
        self,
        game_id: str,
        duration_ms: int,
        on_tick: TickCallback,
        on_complete: CompleteCallback,
        *,
        interval_ms: int = 1000,
    ) -> TimerHandle:
        self.cancel(game_id)
        handle = start_timer(duration_ms, on_tick, on_complete, interval_ms=interval_ms)
        self._by_game[game_id] = handle
        handle.add_done_callback(lambda h: self._release(game_id, h))
        logger.info("memorize timer started game=%s duration_ms=%s", game_id, duration_ms)
        return handle

    def cancel(self, game_id: str) -> bool:
        handle = self._by_game.pop(game_id, None)
        if handle is None:
            return False
        cancelled = handle.cancel()
        if cancelled:
            logger.info("memorize timer cancelled game=%s", game_id)
        return cancelled

    def _release(self, game_id: str, handle: TimerHandle) -> None:
        # Only drop the entry if a newer round has not replaced it.
        if self._by_game.get(game_id) is handle:
            del self._by_game[game_id]

    def get(self, game_id: str) -> TimerHandle | None:
        return self._by_game.get(game_id)

    def cancel_all(self) -> None:
        for game_id in list(self._by_game):
            self.cancel(game_id)


timers = MemorizeTimerRegistry()
