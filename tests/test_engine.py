import random
from dataclasses import replace

import pytest

from pairs.board import BoardInvariantError, check_solution
from pairs.engine import EngineContext, new_game, transition
from pairs.types import (
    AnnounceWin,
    GameConfig,
    GameOver,
    GameState,
    Hide,
    NewGame,
    Reset,
    Resize,
    Reveal,
    Schedule,
    Step,
)
from tests.helpers import mismatched, pairs_of


def test_new_game_is_fully_hidden(context, clock):
    state = new_game(4, context)

    assert state.board_size == 4
    assert state.revealed == frozenset()
    assert state.first_choice is None
    assert state.start_time == clock.now
    check_solution(state.solution, 4)


def test_first_reveal_sets_first_choice(context):
    state = new_game(2, context)

    step = transition(state, Reveal((0, 1)), context)

    assert step.state.revealed == {(0, 1)}
    assert step.state.first_choice == (0, 1)
    assert step.command is None
    # Transitions never touch the old state
    assert state.revealed == frozenset()


def test_matching_second_reveal_keeps_both_tiles(context):
    state = new_game(4, context)
    first, second = pairs_of(state.solution)[0]

    state = transition(state, Reveal(first), context).state
    step = transition(state, Reveal(second), context)

    assert {first, second} <= step.state.revealed
    assert step.state.first_choice is None
    assert step.command is None


def test_mismatch_schedules_hide_of_both_tiles(context, config):
    state = new_game(4, context)
    first, second = mismatched(state.solution)

    state = transition(state, Reveal(first), context).state
    step = transition(state, Reveal(second), context)

    assert step.state.revealed == {first, second}
    assert step.state.first_choice is None
    assert step.command == Schedule(config.hide_delay_ms, Hide(first, second))

    hidden = transition(step.state, step.command.event, context)
    assert hidden.state.revealed == frozenset()
    assert hidden.command is None


def test_hide_only_removes_the_named_tiles(context):
    state = new_game(4, context)
    kept_a, kept_b = pairs_of(state.solution)[1]
    state = replace(state, revealed=frozenset({(0, 0), (0, 1), kept_a, kept_b}))

    step = transition(state, Hide((0, 0), (0, 1)), context)

    assert step.state.revealed == ({kept_a, kept_b} - {(0, 0), (0, 1)})


def test_hide_is_idempotent(context):
    state = new_game(2, context)
    state = transition(state, Reveal((0, 0)), context).state

    once = transition(state, Hide((1, 0), (1, 1)), context).state
    twice = transition(once, Hide((1, 0), (1, 1)), context).state

    assert once.revealed == {(0, 0)}
    assert twice.revealed == once.revealed


def test_reveal_of_revealed_tile_is_ignored(context):
    state = new_game(2, context)
    state = transition(state, Reveal((0, 0)), context).state

    step = transition(state, Reveal((0, 0)), context)

    assert step.state is state
    assert step.command is None


@pytest.mark.parametrize("pos", [(2, 0), (0, 2), (-1, 0), (5, 5)])
def test_reveal_off_the_board_is_ignored(context, pos):
    state = new_game(2, context)

    step = transition(state, Reveal(pos), context)

    assert step == Step(state)


def test_clearing_the_board_schedules_game_over(context, config):
    state = new_game(2, context)
    steps = []
    for first, second in pairs_of(state.solution).values():
        state = transition(state, Reveal(first), context).state
        step = transition(state, Reveal(second), context)
        steps.append(step)
        state = step.state

    assert steps[0].command is None
    assert steps[-1].command == Schedule(config.game_over_delay_ms, GameOver())
    assert state.is_complete


def test_game_over_announces_elapsed_time_and_leaves_state_alone(context, clock):
    state = new_game(2, context)
    state = replace(state, revealed=frozenset(state.solution))
    clock.advance(12.5)

    step = transition(state, GameOver(), context)

    assert step.state is state
    assert step.command == AnnounceWin(elapsed_seconds=12.5)


def test_game_over_on_unfinished_board_is_ignored(context):
    state = new_game(2, context)
    state = transition(state, Reveal((0, 0)), context).state

    step = transition(state, GameOver(), context)

    assert step == Step(state)


def test_hide_of_the_first_choice_clears_it(context):
    state = new_game(4, context)
    state = transition(state, Reveal((0, 0)), context).state

    step = transition(state, Hide((0, 0), (3, 3)), context)

    assert step.state.revealed == frozenset()
    assert step.state.first_choice is None


def test_tile_hidden_under_the_first_choice_is_never_matched_with_itself(context, config):
    state = new_game(4, context)
    # A turn's first choice got hidden by a Hide left over from earlier
    state = replace(state, first_choice=(0, 0))
    first, second = pairs_of(state.solution)[state.solution[(0, 0)]]
    partner = second if first == (0, 0) else first

    retap = transition(state, Reveal((0, 0)), context)

    assert retap.state.revealed == {(0, 0)}
    assert retap.state.first_choice == (0, 0)
    assert retap.command is None

    matched = transition(retap.state, Reveal(partner), context)
    assert matched.state.revealed == {(0, 0), partner}
    assert matched.state.first_choice is None
    assert matched.command is None


def test_resize_grows_and_shrinks_the_board(context):
    state = new_game(4, context)

    bigger = transition(state, Resize(2), context).state
    smaller = transition(state, Resize(-2), context).state

    assert bigger.board_size == 6
    check_solution(bigger.solution, 6)
    assert smaller.board_size == 2
    check_solution(smaller.solution, 2)


@pytest.mark.parametrize("size, delta", [(6, 2), (2, -2), (4, 1), (4, 4)])
def test_resize_outside_bounds_is_a_noop(context, size, delta):
    state = new_game(size, context)
    state = transition(state, Reveal((0, 0)), context).state

    step = transition(state, Resize(delta), context)

    assert step.state is state
    assert step.command is None


def test_resize_starts_a_fresh_game(context, clock):
    state = new_game(4, context)
    state = transition(state, Reveal((0, 0)), context).state
    clock.advance(3)

    resized = transition(state, Resize(2), context).state

    assert resized.revealed == frozenset()
    assert resized.first_choice is None
    assert resized.start_time == clock.now


def test_reset_goes_back_to_default_size(clock):
    context = EngineContext(config=GameConfig(default_board_size=4), rng=random.Random(5), clock=clock)
    state = new_game(6, context)

    step = transition(state, Reset(), context)

    assert step.state.board_size == 4
    assert step.state.revealed == frozenset()


def test_new_game_keeps_size_and_reshuffles(context):
    state = new_game(6, context)

    boards = [transition(state, NewGame(), context).state for _ in range(5)]

    for board in boards:
        assert board.board_size == 6
        check_solution(board.solution, 6)
    assert any(board.solution != state.solution for board in boards)


def test_custom_delays_are_used(clock):
    config = GameConfig(game_over_delay_ms=5, hide_delay_ms=750)
    context = EngineContext(config=config, rng=random.Random(9), clock=clock)
    state = new_game(2, context)
    first, second = mismatched(state.solution)

    state = transition(state, Reveal(first), context).state
    step = transition(state, Reveal(second), context)

    assert step.command.delay_ms == 750


def test_missing_pair_id_is_an_invariant_violation(context, clock):
    state = GameState(board_size=2, solution={(0, 1): 0, (1, 0): 1, (1, 1): 1}, start_time=clock.now)

    with pytest.raises(BoardInvariantError):
        transition(state, Reveal((0, 0)), context)


def test_unknown_event_is_rejected(context):
    state = new_game(2, context)

    with pytest.raises(TypeError):
        transition(state, "reveal", context)


@pytest.mark.parametrize("kwargs", [
    {"min_board_size": 3},
    {"max_board_size": 7},
    {"default_board_size": 8},
    {"min_board_size": 4, "default_board_size": 2},
    {"resize_step": 1},
    {"hide_delay_ms": -1},
])
def test_invalid_config_is_rejected(kwargs):
    with pytest.raises(ValueError):
        GameConfig(**kwargs)
