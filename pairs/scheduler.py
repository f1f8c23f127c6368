"""Delayed dispatch and the single-writer game session."""
import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Set

from pairs.board import RandomSource
from pairs.engine import EngineContext, new_game, transition
from pairs.types import AnnounceWin, Command, Event, GameConfig, GameState, Schedule

logger = logging.getLogger(__name__)

Notifier = Callable[[float], None]


class ScheduledHandle(Protocol):
    def cancel(self) -> bool:
        ...

    def done(self) -> bool:
        ...


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, event: Event) -> ScheduledHandle:
        ...


class AsyncioScheduler:
    """Delivers events to `sink` after a delay, using the running event loop.

    Inside a Temporal workflow the sleep becomes a durable workflow timer.
    Must be used from within a running loop.
    """

    def __init__(self, sink: Optional[Callable[[Event], None]] = None):
        self.sink = sink
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, delay_ms: int, event: Event) -> asyncio.Task:
        if self.sink is None:
            raise RuntimeError("AsyncioScheduler has no sink to deliver events to")
        task = asyncio.create_task(self._fire(delay_ms, event, self.sink))
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Scheduled event failed", exc_info=error)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _fire(self, delay_ms: int, event: Event, sink: Callable[[Event], None]) -> None:
        await asyncio.sleep(delay_ms / 1000)
        sink(event)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameSession:
    """Owns the current state and feeds every event through the transition.

    All events, player input and scheduled ones alike, go through dispatch(),
    so only one transition ever runs at a time as long as dispatch() is called
    from a single event loop.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        scheduler: Optional[Scheduler] = None,
        notifier: Optional[Notifier] = None,
        rng: Optional[RandomSource] = None,
        clock: Optional[Callable[[], datetime]] = None,
        board_size: Optional[int] = None,
    ):
        self.config = config or GameConfig()
        self.context = EngineContext(
            config=self.config,
            rng=rng or random.Random(),
            clock=clock or _utcnow,
        )
        if scheduler is None:
            scheduler = AsyncioScheduler(self.dispatch)
        elif isinstance(scheduler, AsyncioScheduler) and scheduler.sink is None:
            scheduler.sink = self.dispatch
        self.scheduler = scheduler
        self.notifier = notifier
        self.won_in: Optional[float] = None
        self._pending: List[ScheduledHandle] = []
        self._state = new_game(board_size or self.config.default_board_size, self.context)

    @property
    def state(self) -> GameState:
        return self._state

    def dispatch(self, event: Event) -> GameState:
        """Apply one event, run its follow-up command and return the new state."""
        previous = self._state
        step = transition(previous, event, self.context)
        self._state = step.state

        if step.state.solution is not previous.solution:
            self.won_in = None
            self.cancel_pending()
            logger.info(f"New {step.state.board_size}x{step.state.board_size} board")

        if step.command is not None:
            self._run(step.command)
        return self._state

    def cancel_pending(self) -> int:
        """Cancel scheduled events that have not fired yet; return how many."""
        cancelled = 0
        for handle in self._pending:
            if not handle.done() and handle.cancel():
                cancelled += 1
        self._pending = []
        if cancelled:
            logger.debug(f"Cancelled {cancelled} scheduled event(s) from the previous board")
        return cancelled

    def _run(self, command: Command) -> None:
        if isinstance(command, Schedule):
            logger.debug(f"Scheduling {command.event} in {command.delay_ms}ms")
            handle = self.scheduler.schedule(command.delay_ms, command.event)
            self._pending = [pending for pending in self._pending if not pending.done()]
            self._pending.append(handle)
        elif isinstance(command, AnnounceWin):
            self.won_in = command.elapsed_seconds
            logger.info(f"Board cleared in {command.elapsed_seconds:.2f} seconds")
            if self.notifier is None:
                return
            try:
                self.notifier(command.elapsed_seconds)
            except Exception:
                logger.exception("Win notifier failed")
        else:
            raise TypeError(f"Unknown command: {command!r}")
