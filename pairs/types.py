"""Type definitions for the Pairs memory game."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

Position = Tuple[int, int]  # (row, col)
Solution = Dict[Position, int]


@dataclass
class GameConfig:
    """Board bounds and transition delays for a game."""
    min_board_size: int = 2
    max_board_size: int = 6
    default_board_size: int = 2
    resize_step: int = 2
    game_over_delay_ms: int = 100
    hide_delay_ms: int = 200

    def __post_init__(self):
        for name in ('min_board_size', 'max_board_size', 'default_board_size'):
            value = getattr(self, name)
            if value < 2 or value % 2:
                raise ValueError(f"{name} must be an even number >= 2, got {value}")
        if not self.min_board_size <= self.default_board_size <= self.max_board_size:
            raise ValueError("default_board_size must lie between min_board_size and max_board_size")
        if self.resize_step <= 0 or self.resize_step % 2:
            raise ValueError(f"resize_step must be a positive even number, got {self.resize_step}")
        if self.game_over_delay_ms < 0 or self.hide_delay_ms < 0:
            raise ValueError("delays must not be negative")


@dataclass(frozen=True)
class GameState:
    """Snapshot of a game. Transitions return new instances."""
    board_size: int
    solution: Solution
    start_time: datetime
    revealed: FrozenSet[Position] = frozenset()
    first_choice: Optional[Position] = None

    @property
    def total_tiles(self) -> int:
        return self.board_size * self.board_size

    @property
    def is_complete(self) -> bool:
        return len(self.revealed) == self.total_tiles

    def on_board(self, pos: Position) -> bool:
        row, col = pos
        return 0 <= row < self.board_size and 0 <= col < self.board_size


# Events

@dataclass(frozen=True)
class Resize:
    delta: int


@dataclass(frozen=True)
class Reveal:
    position: Position


@dataclass(frozen=True)
class Hide:
    first: Position
    second: Position


@dataclass(frozen=True)
class GameOver:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class NewGame:
    pass


Event = Union[Resize, Reveal, Hide, GameOver, Reset, NewGame]


# Commands a transition hands back to its host

@dataclass(frozen=True)
class Schedule:
    """Deliver `event` again after `delay_ms`."""
    delay_ms: int
    event: Event


@dataclass(frozen=True)
class AnnounceWin:
    elapsed_seconds: float


Command = Union[Schedule, AnnounceWin]


@dataclass(frozen=True)
class Step:
    """Result of one transition."""
    state: GameState
    command: Optional[Command] = None


class GameStatus(str, Enum):
    """Possible game states."""
    IN_PROGRESS = 'IN_PROGRESS'
    WON = 'WON'
    CLOSED = 'CLOSED'


ACTIONS = ('reveal', 'bigger', 'smaller', 'reset', 'new_game')


@dataclass
class PlayerAction:
    """Request to act on a game."""
    action: str  # one of ACTIONS
    row: Optional[int] = None
    col: Optional[int] = None


@dataclass
class WinAnnouncement:
    """Payload handed to the win notifier."""
    game_id: str
    board_size: int
    elapsed_seconds: float


@dataclass
class GameView:
    """What a renderer needs to draw a game."""
    id: str
    board_size: int
    tiles: List[List[Optional[int]]]  # pair-id of face-up tiles, None when face-down
    status: GameStatus
    start_time: str
    revealed_count: int = 0
    first_choice: Optional[List[int]] = None
    elapsed_seconds: Optional[float] = None
    message: Optional[str] = None
    config: Optional[GameConfig] = None
