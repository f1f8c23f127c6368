"""Board generation for the Pairs memory game."""
from collections import Counter
from typing import List, Protocol, Set

from pairs.types import Position, Solution


class RandomSource(Protocol):
    """Anything with `randrange(stop)`, e.g. random.Random or workflow.random()."""

    def randrange(self, stop: int) -> int:
        ...


class BoardInvariantError(AssertionError):
    """A solution map does not pair every tile exactly once."""


def all_positions(board_size: int) -> List[Position]:
    """Every position of the grid in row-major order."""
    return [(row, col) for row in range(board_size) for col in range(board_size)]


def generate_solution(board_size: int, rng: RandomSource) -> Solution:
    """Assign a pair-id to every tile of a board_size x board_size grid.

    Half of the tiles are drawn at random without replacement; the remaining
    tiles, in row-major order, form the other half. Pair-id i goes to the i-th
    tile of each half, so every id ends up on exactly two tiles.
    """
    if board_size < 2 or board_size % 2:
        raise ValueError(f"board size must be an even number >= 2, got {board_size}")

    pair_count = board_size * board_size // 2

    # Draw distinct random positions, keeping the order they came out in
    first_half: List[Position] = []
    seen: Set[Position] = set()
    while len(first_half) < pair_count:
        pos = (rng.randrange(board_size), rng.randrange(board_size))
        if pos in seen:
            continue
        seen.add(pos)
        first_half.append(pos)

    second_half = [pos for pos in all_positions(board_size) if pos not in seen]

    solution: Solution = {}
    for pair_id, pos in enumerate(first_half):
        solution[pos] = pair_id
    for pair_id, pos in enumerate(second_half):
        solution[pos] = pair_id
    return solution


def check_solution(solution: Solution, board_size: int) -> None:
    """Raise BoardInvariantError unless every id in range sits on exactly two tiles."""
    expected = set(all_positions(board_size))
    if set(solution) != expected:
        raise BoardInvariantError(
            f"solution covers {len(solution)} positions, expected the {len(expected)} tiles of a {board_size}x{board_size} board"
        )

    counts = Counter(solution.values())
    pair_count = board_size * board_size // 2
    if set(counts) != set(range(pair_count)):
        raise BoardInvariantError(f"pair ids {sorted(counts)} do not cover 0..{pair_count - 1}")
    odd = [pair_id for pair_id, count in counts.items() if count != 2]
    if odd:
        raise BoardInvariantError(f"pair ids {sorted(odd)} are not used exactly twice")
