from __future__ import annotations

import os
from dataclasses import dataclass

from odd_one_out.api.models import Difficulty

TILE_COUNTS: dict[Difficulty, tuple[int, ...]] = {
    Difficulty.easy: (4, 5, 6, 7, 8),
    Difficulty.medium: (8, 9, 10, 11, 12),
    Difficulty.hard: (12, 13, 14, 15, 16),
}

MEMORIZE_MS: dict[Difficulty, int] = {
    Difficulty.easy: 4_000,
    Difficulty.medium: 8_000,
    Difficulty.hard: 12_000,
}


def allowed_tile_counts(difficulty: Difficulty | str) -> tuple[int, ...]:
    return TILE_COUNTS[Difficulty(difficulty)]


def memorize_duration_ms(difficulty: Difficulty | str) -> int:
    return MEMORIZE_MS[Difficulty(difficulty)]


@dataclass(frozen=True, slots=True)
class ServerSettings:
    redis_url: str
    log_level: str
    game_ttl_seconds: int


def settings_from_env() -> ServerSettings:
    return ServerSettings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        log_level=os.environ.get("ODD_ONE_OUT_LOG_LEVEL", "INFO").upper(),
        game_ttl_seconds=int(os.environ.get("ODD_ONE_OUT_GAME_TTL_SECONDS", "3600")),
    )
