from __future__ import annotations

import math
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from odd_one_out.rules import WIN_THRESHOLD


class Difficulty(StrEnum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class GamePhase(StrEnum):
    start = "start"
    difficulty = "difficulty"
    number_selection = "number_selection"
    memorize = "memorize"
    recall = "recall"
    round_win = "round_win"
    overall_win = "overall_win"
    game_over = "game_over"


# Phases in which the round has been evaluated and the changed tile may be shown.
RESULT_PHASES: frozenset[GamePhase] = frozenset({GamePhase.round_win, GamePhase.overall_win, GamePhase.game_over})


class FollowUp(StrEnum):
    """Actions offered to the player after a round has been evaluated."""

    home = "home"
    next_round = "next_round"
    try_again = "try_again"


class Round(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Ordered exactly as first shown to the player.
    original: tuple[int, ...]
    # Scrambled, with one value replaced.
    recall_layout: tuple[int, ...]
    changed_index: int
    changed_value: int

    # Pre-shuffle bookkeeping, kept for debugging and tests.
    original_index: int
    replaced_value: int


class GameSession(BaseModel):
    """One play-through. Never mutated; transitions return a new copy."""

    model_config = ConfigDict(frozen=True)

    phase: GamePhase = GamePhase.start
    difficulty: Difficulty | None = None
    tile_count: int | None = None

    total_score: int = 0
    round_score: int = 0
    round_number: int = 0

    round: Round | None = None
    # What the grid currently shows: the original during memorize, the recall layout afterwards.
    displayed: tuple[int, ...] = ()
    selection: int | None = None
    countdown: int = 0

    # UI-facing text; styling is up to the client.
    feedback: str = ""
    message: str = ""
    follow_ups: tuple[FollowUp, ...] = ()

    @property
    def grid_dimension(self) -> int:
        if not self.tile_count:
            return 3
        return max(3, math.ceil(math.sqrt(self.tile_count)))


class GameRecord(BaseModel):
    game_id: UUID
    created_at: datetime
    last_updated_at: datetime

    # For reproducibility/debugging.
    seed: int

    session: GameSession = Field(default_factory=GameSession)


class GameView(BaseModel):
    """Client-safe projection of a game: the answer is hidden until the round is evaluated."""

    game_id: UUID
    phase: GamePhase
    difficulty: Difficulty | None
    tile_count: int | None
    grid_dimension: int
    total_score: int
    round_score: int
    win_threshold: int
    round_number: int
    displayed: list[int]
    selection: int | None
    countdown: int
    feedback: str
    message: str
    follow_ups: list[FollowUp]

    changed_index: int | None = None
    changed_value: int | None = None

    @classmethod
    def from_record(cls, record: GameRecord) -> "GameView":
        s = record.session
        revealed = s.round is not None and s.phase in RESULT_PHASES
        return cls(
            game_id=record.game_id,
            phase=s.phase,
            difficulty=s.difficulty,
            tile_count=s.tile_count,
            grid_dimension=s.grid_dimension,
            total_score=s.total_score,
            round_score=s.round_score,
            win_threshold=WIN_THRESHOLD,
            round_number=s.round_number,
            displayed=list(s.displayed),
            selection=s.selection,
            countdown=s.countdown,
            feedback=s.feedback,
            message=s.message,
            follow_ups=list(s.follow_ups),
            changed_index=s.round.changed_index if revealed and s.round else None,
            changed_value=s.round.changed_value if revealed and s.round else None,
        )


class DifficultyRequest(BaseModel):
    difficulty: Difficulty


class TileCountRequest(BaseModel):
    count: int = Field(..., ge=1)


class SelectRequest(BaseModel):
    index: int


class SubmitRequest(BaseModel):
    index: int | None = None


class GameListResponse(BaseModel):
    games: list[GameView]
