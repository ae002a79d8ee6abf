from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from odd_one_out.api.models import GamePhase, GameSession


class GameFSM(StateMachine):
    """FSM wrapper around GameSession.

    Only guards which events are legal from which phase; the session values are
    computed by the transition functions in `odd_one_out.session`.
    """

    start = State(GamePhase.start.value, value=GamePhase.start.value, initial=True)
    difficulty = State(GamePhase.difficulty.value, value=GamePhase.difficulty.value)
    number_selection = State(GamePhase.number_selection.value, value=GamePhase.number_selection.value)
    memorize = State(GamePhase.memorize.value, value=GamePhase.memorize.value)
    recall = State(GamePhase.recall.value, value=GamePhase.recall.value)
    round_win = State(GamePhase.round_win.value, value=GamePhase.round_win.value)
    overall_win = State(GamePhase.overall_win.value, value=GamePhase.overall_win.value)
    game_over = State(GamePhase.game_over.value, value=GamePhase.game_over.value)

    begin = start.to(difficulty)
    choose_difficulty = difficulty.to(number_selection)
    choose_tile_count = number_selection.to(memorize)
    reveal = memorize.to(recall)
    answer_correct = recall.to(round_win)
    answer_champion = recall.to(overall_win)
    answer_wrong = recall.to(game_over)
    next_round = round_win.to(memorize) | game_over.to(memorize)
    go_home = (
        start.to.itself()
        | difficulty.to(start)
        | number_selection.to(start)
        | memorize.to(start)
        | recall.to(start)
        | round_win.to(start)
        | overall_win.to(start)
        | game_over.to(start)
    )

    def __init__(self, session: GameSession):
        self.session = session
        super().__init__(start_value=session.phase.value)

    @property
    def phase(self) -> GamePhase:
        return GamePhase(str(self.current_state.value))


def next_phase(session: GameSession, event: str) -> GamePhase | None:
    """Phase reached by sending `event` from the session's phase, or None if not allowed there."""

    fsm = GameFSM(session)
    try:
        fsm.send(event)
    except TransitionNotAllowed:
        return None
    return fsm.phase
