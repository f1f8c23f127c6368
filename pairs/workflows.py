"""Temporal workflows for the Pairs memory game."""
import asyncio
from datetime import timedelta
from typing import Optional, Set

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ApplicationError

with workflow.unsafe.imports_passed_through():
    from pairs.activities import announce_win
    from pairs.scheduler import GameSession
    from pairs.types import (
        Event,
        GameConfig,
        GameStatus,
        GameView,
        NewGame,
        PlayerAction,
        Reset,
        Resize,
        Reveal,
        WinAnnouncement,
    )


def action_to_event(action: PlayerAction, config: GameConfig) -> Event:
    """Translate a player request into an engine event."""
    if action.action == 'reveal':
        if not isinstance(action.row, int) or not isinstance(action.col, int):
            raise ValueError("reveal needs integer row and col")
        return Reveal((action.row, action.col))
    if action.action == 'bigger':
        return Resize(config.resize_step)
    if action.action == 'smaller':
        return Resize(-config.resize_step)
    if action.action == 'reset':
        return Reset()
    if action.action == 'new_game':
        return NewGame()
    raise ValueError(f"Unknown action: {action.action!r}")


def build_game_view(game_id: str, session: GameSession, closed: bool = False,
                    message: Optional[str] = None) -> GameView:
    """Render the session's current state into the shape clients poll for."""
    state = session.state
    size = state.board_size
    tiles = [
        [state.solution[(row, col)] if (row, col) in state.revealed else None for col in range(size)]
        for row in range(size)
    ]

    if closed:
        status = GameStatus.CLOSED
    elif state.is_complete:
        status = GameStatus.WON
    else:
        status = GameStatus.IN_PROGRESS

    won_in = session.won_in
    return GameView(
        id=game_id,
        board_size=size,
        tiles=tiles,
        status=status,
        start_time=state.start_time.isoformat(),
        revealed_count=len(state.revealed),
        first_choice=list(state.first_choice) if state.first_choice is not None else None,
        elapsed_seconds=won_in,
        message=message if won_in is not None else None,
        config=session.config,
    )


@workflow.defn
class MemoryGameWorkflow:
    """Workflow that manages a single memory game."""

    def __init__(self):
        self.game_id: str = ""
        self.session: GameSession | None = None
        self.last_activity_time: float = 0
        self.should_close: bool = False
        self.message: Optional[str] = None
        self._announcements: Set[asyncio.Task] = set()

    @workflow.run
    async def run(self, game_id: str, config: GameConfig) -> None:
        """Main workflow entry point."""
        # Store game_id immediately so queries can access it during initialization
        self.game_id = game_id
        self.last_activity_time = workflow.time()

        # Deterministic random source and clock keep the board stable across replays
        self.session = GameSession(
            config=config,
            notifier=self._on_win,
            rng=workflow.random(),
            clock=workflow.now,
        )
        workflow.logger.info(f"Game {game_id} started on a {self.session.state.board_size}x{self.session.state.board_size} board")

        # Auto-close workflow after 24 hours of inactivity
        inactivity_timeout = timedelta(hours=24)
        check_interval = timedelta(minutes=1)

        while not self.should_close:
            try:
                await workflow.wait_condition(
                    lambda: self.should_close or
                           (workflow.time() - self.last_activity_time) >= inactivity_timeout.total_seconds(),
                    timeout=check_interval.total_seconds(),
                )
            except asyncio.TimeoutError:
                continue

            if self.should_close:
                break

            if (workflow.time() - self.last_activity_time) >= inactivity_timeout.total_seconds():
                workflow.logger.info(f"Game {game_id} auto-closing due to 24 hours of inactivity")
                break

        self.should_close = True
        workflow.logger.info(f"Memory game workflow {game_id} completed")

    @workflow.signal
    def player_action_signal(self, action: PlayerAction) -> None:
        """Signal to act on the game (fire-and-forget)."""
        if not self.session or self.should_close:
            return
        try:
            self._apply(action)
        except ValueError as error:
            workflow.logger.warning(f"Ignoring action: {error}")

    @workflow.update
    def player_action_update(self, action: PlayerAction) -> GameView:
        """Update to act on the game and return the updated state."""
        if not self.session:
            raise ApplicationError("Game state not initialized", non_retryable=True)
        if self.should_close:
            return self._view()
        self._apply(action)
        return self._view()

    @player_action_update.validator
    def validate_player_action(self, action: PlayerAction) -> None:
        config = self.session.config if self.session else GameConfig()
        try:
            action_to_event(action, config)
        except ValueError as error:
            raise ApplicationError(str(error), type="InvalidAction", non_retryable=True) from error

    @workflow.signal
    def close_game_signal(self) -> None:
        """Signal to close the game."""
        self.should_close = True

    @workflow.query
    def get_game_state_query(self) -> GameView:
        """Query to get the current game state."""
        if not self.session:
            # Minimal valid view while initializing
            return GameView(
                id=self.game_id,
                board_size=0,
                tiles=[],
                status=GameStatus.IN_PROGRESS,
                start_time="",
            )
        return self._view()

    def _apply(self, action: PlayerAction) -> None:
        event = action_to_event(action, self.session.config)
        self.last_activity_time = workflow.time()
        self.session.dispatch(event)

    def _view(self) -> GameView:
        return build_game_view(self.game_id, self.session, closed=self.should_close, message=self.message)

    def _on_win(self, elapsed_seconds: float) -> None:
        self.message = None
        task = asyncio.create_task(self._announce(elapsed_seconds))
        self._announcements.add(task)
        task.add_done_callback(self._announcements.discard)

    async def _announce(self, elapsed_seconds: float) -> None:
        announcement = WinAnnouncement(
            game_id=self.game_id,
            board_size=self.session.state.board_size,
            elapsed_seconds=elapsed_seconds,
        )
        try:
            self.message = await workflow.execute_activity(
                announce_win,
                announcement,
                start_to_close_timeout=timedelta(seconds=10),
                retry_policy=RetryPolicy(maximum_attempts=3),
            )
        except Exception as error:
            # The game goes on without the announcement
            workflow.logger.error(f"Error announcing win: {error}")
