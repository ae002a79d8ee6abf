"""Pure transition functions over GameSession.

Every function takes a session and returns a new one. Events that the current
phase does not accept return the session unchanged (or with only a feedback
message), never raise.
"""
from __future__ import annotations

import logging
import random

from odd_one_out.api.models import Difficulty, FollowUp, GamePhase, GameSession
from odd_one_out.config import allowed_tile_counts, memorize_duration_ms
from odd_one_out.core.round_generator import build_round
from odd_one_out.fsm import next_phase
from odd_one_out.rules import POINTS_PER_CORRECT, RANGE_MAX, WIN_THRESHOLD

logger = logging.getLogger(__name__)

MSG_OBSERVE = "Observe the numbers!"
MSG_FIND = "Find the changed number!"
MSG_SELECT_TILE = "Please select a tile!"
MSG_OFF_GRID = "That tile is not on the grid."
MSG_ROUND_COMPLETE = "Round Complete!"
MSG_CHAMPION = "You are the CHAMPION!"


def new_session() -> GameSession:
    return GameSession()


def begin(session: GameSession) -> GameSession:
    phase = next_phase(session, "begin")
    if phase is None:
        return session
    return session.model_copy(update={"phase": phase, "feedback": "", "message": "", "follow_ups": ()})


def select_difficulty(session: GameSession, difficulty: Difficulty | str) -> GameSession:
    phase = next_phase(session, "choose_difficulty")
    if phase is None:
        return session
    return session.model_copy(
        update={
            "phase": phase,
            "difficulty": Difficulty(difficulty),
            "total_score": 0,
            "round_score": 0,
        }
    )


def _enter_memorize(
    session: GameSession,
    *,
    phase: GamePhase,
    difficulty: Difficulty,
    tile_count: int,
    rng: random.Random | None,
    range_max: int,
) -> GameSession:
    rnd = build_round(tile_count, range_max, rng=rng or random.Random())
    return session.model_copy(
        update={
            "phase": phase,
            "tile_count": tile_count,
            "round": rnd,
            "round_number": session.round_number + 1,
            "round_score": 0,
            "selection": None,
            "displayed": rnd.original,
            "countdown": memorize_duration_ms(difficulty) // 1000,
            "feedback": MSG_OBSERVE,
            "message": "",
            "follow_ups": (),
        }
    )


def select_tile_count(
    session: GameSession,
    count: int,
    *,
    rng: random.Random | None = None,
    range_max: int = RANGE_MAX,
) -> GameSession:
    phase = next_phase(session, "choose_tile_count")
    if phase is None or session.difficulty is None:
        return session

    allowed = allowed_tile_counts(session.difficulty)
    if count not in allowed:
        return session.model_copy(
            update={"feedback": f"Choose between {allowed[0]} and {allowed[-1]} tiles for {session.difficulty.value}."}
        )

    return _enter_memorize(
        session,
        phase=phase,
        difficulty=session.difficulty,
        tile_count=count,
        rng=rng,
        range_max=range_max,
    )


def tick(session: GameSession, seconds_left: int) -> GameSession:
    if session.phase != GamePhase.memorize:
        return session
    return session.model_copy(update={"countdown": max(0, seconds_left)})


def expire_memorize(session: GameSession) -> GameSession:
    phase = next_phase(session, "reveal")
    if phase is None or session.round is None:
        return session
    return session.model_copy(
        update={
            "phase": phase,
            "displayed": session.round.recall_layout,
            "countdown": 0,
            "feedback": MSG_FIND,
        }
    )


def select_tile(session: GameSession, index: int) -> GameSession:
    if session.phase != GamePhase.recall:
        return session
    if not 0 <= index < len(session.displayed):
        return session
    return session.model_copy(update={"selection": index})


def submit_selection(session: GameSession, index: int | None = None) -> GameSession:
    """Evaluate the player's pick. `index`, when given, is recorded as the selection first."""

    if session.phase != GamePhase.recall or session.round is None:
        return session
    if index is not None:
        if not 0 <= index < len(session.displayed):
            # Never fall back to an earlier selection for an off-grid pick.
            return session.model_copy(update={"feedback": MSG_OFF_GRID})
        session = select_tile(session, index)
    if session.selection is None:
        return session.model_copy(update={"feedback": MSG_SELECT_TILE})

    rnd = session.round
    if session.selection == rnd.changed_index:
        total = session.total_score + POINTS_PER_CORRECT
        if total >= WIN_THRESHOLD:
            phase = next_phase(session, "answer_champion")
            feedback = MSG_CHAMPION
            message = f"You are the CHAMPION! Final Score: {total}"
            follow_ups: tuple[FollowUp, ...] = (FollowUp.home,)
        else:
            phase = next_phase(session, "answer_correct")
            feedback = MSG_ROUND_COMPLETE
            message = f"Round Complete! Total Score: {total}."
            follow_ups = (FollowUp.home, FollowUp.next_round)
        logger.debug("correct pick index=%s total=%s phase=%s", session.selection, total, phase)
        return session.model_copy(
            update={
                "phase": phase,
                "round_score": POINTS_PER_CORRECT,
                "total_score": total,
                "feedback": feedback,
                "message": message,
                "follow_ups": follow_ups,
            }
        )

    changed = session.displayed[rnd.changed_index]
    logger.debug("wrong pick index=%s expected=%s", session.selection, rnd.changed_index)
    return session.model_copy(
        update={
            "phase": next_phase(session, "answer_wrong"),
            "round_score": 0,
            "feedback": f"Wrong! The changed number was: {changed}",
            "message": f"Game Over! The changed tile was: {changed}",
            "follow_ups": (FollowUp.home, FollowUp.try_again),
        }
    )


def next_round(
    session: GameSession,
    *,
    rng: random.Random | None = None,
    range_max: int = RANGE_MAX,
) -> GameSession:
    """Start another round with the same tile count ("Next Round" / "Try Again")."""

    phase = next_phase(session, "next_round")
    if phase is None or session.tile_count is None or session.difficulty is None:
        return session
    return _enter_memorize(
        session,
        phase=phase,
        difficulty=session.difficulty,
        tile_count=session.tile_count,
        rng=rng,
        range_max=range_max,
    )


def go_home(session: GameSession) -> GameSession:
    """Back to the start screen with a fresh session. Legal from every phase."""

    phase = next_phase(session, "go_home") or GamePhase.start
    # round_number keeps counting so a late timer completion can never match a new round.
    return GameSession(phase=phase, round_number=session.round_number)
