"""Turn state machine for the Pairs memory game.

`transition` never sleeps and never talks to the outside world. Delays and the
win announcement come back as commands on the returned Step; whoever hosts the
game (a GameSession, a workflow) carries them out.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from pairs.board import BoardInvariantError, RandomSource, check_solution, generate_solution
from pairs.types import (
    AnnounceWin,
    Event,
    GameConfig,
    GameOver,
    GameState,
    Hide,
    NewGame,
    Position,
    Reset,
    Resize,
    Reveal,
    Schedule,
    Step,
)

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Collaborators a transition may consult."""
    config: GameConfig
    rng: RandomSource
    clock: Callable[[], datetime]


def new_game(board_size: int, context: EngineContext) -> GameState:
    """Create a fresh, fully hidden board."""
    solution = generate_solution(board_size, context.rng)
    check_solution(solution, board_size)
    return GameState(
        board_size=board_size,
        solution=solution,
        start_time=context.clock(),
    )


def pair_id(state: GameState, pos: Position) -> int:
    try:
        return state.solution[pos]
    except KeyError:
        raise BoardInvariantError(f"no pair id for {pos} on a {state.board_size}x{state.board_size} board") from None


def transition(state: GameState, event: Event, context: EngineContext) -> Step:
    """Apply one event and return the new state plus an optional command."""
    if isinstance(event, Reveal):
        return _reveal(state, event.position, context.config)

    if isinstance(event, Hide):
        hidden = {event.first, event.second}
        first_choice = None if state.first_choice in hidden else state.first_choice
        return Step(replace(state, revealed=state.revealed - hidden, first_choice=first_choice))

    if isinstance(event, Resize):
        size = state.board_size + event.delta
        config = context.config
        if size % 2 or not config.min_board_size <= size <= config.max_board_size:
            logger.debug(f"Ignoring resize from {state.board_size} to {size}")
            return Step(state)
        return Step(new_game(size, context))

    if isinstance(event, GameOver):
        if not state.is_complete:
            logger.debug("Ignoring game over on an unfinished board")
            return Step(state)
        elapsed = (context.clock() - state.start_time).total_seconds()
        return Step(state, AnnounceWin(elapsed_seconds=elapsed))

    if isinstance(event, Reset):
        return Step(new_game(context.config.default_board_size, context))

    if isinstance(event, NewGame):
        return Step(new_game(state.board_size, context))

    raise TypeError(f"Unknown event: {event!r}")


def _reveal(state: GameState, pos: Position, config: GameConfig) -> Step:
    if not state.on_board(pos) or pos in state.revealed:
        logger.debug(f"Ignoring reveal of {pos}")
        return Step(state)

    revealed = state.revealed | {pos}
    first = state.first_choice

    # First tile of the turn. A first choice that is no longer face-up
    # was hidden under it, so the turn starts over.
    if first is None or first not in state.revealed:
        pair_id(state, pos)  # every on-board tile must carry an id
        return Step(replace(state, revealed=revealed, first_choice=pos))

    new_state = replace(state, revealed=revealed, first_choice=None)

    if pair_id(state, first) == pair_id(state, pos):
        if new_state.is_complete:
            return Step(new_state, Schedule(config.game_over_delay_ms, GameOver()))
        return Step(new_state)

    # Leave both tiles up long enough for the player to see them
    return Step(new_state, Schedule(config.hide_delay_ms, Hide(first, pos)))
