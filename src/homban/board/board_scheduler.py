# src/homban/board/board_scheduler.py

from __future__ import annotations

"""
Board scheduler.

A single long-lived loop that:
- reads the board,
- works out when the next lane transition is due,
- sleeps until then *or* until the board changes, whichever comes first,
- performs due transitions through the BoardStore.

Transitions:
- Done     -> Inactive  at the first local midnight after the task was last changed
- Inactive -> Ready     when schedule_ready(task) has passed

To stop the scheduler, cancel the coroutine/task.
"""

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, tzinfo

from ..core.ports import Clock, Sleeper
from .board_models import Board, Lane, TaskNotFoundError
from .board_service import BoardStore
from .readiness import is_ready, schedule_ready

logger = logging.getLogger(__name__)


class AutoResetEvent:
    """
    Latching wake-up signal.

    set() is remembered until one wait() consumes it, so a signal that arrives
    before anyone waits is not lost. Several set() calls before a wait() collapse
    into one wake-up.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
        self._event.clear()


def next_midnight(instant: datetime, tz: tzinfo | None = None) -> datetime:
    """First local midnight strictly after `instant` (in tz, or the system zone)."""
    local = instant.astimezone(tz)
    return (local + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)


class BoardScheduler:
    def __init__(
        self,
        board_store: BoardStore,
        clock: Clock,
        sleeper: Sleeper,
        *,
        tz: tzinfo | None = None,
    ) -> None:
        self._board_store = board_store
        self._clock = clock
        self._sleeper = sleeper
        self._tz = tz
        self._board_changed = AutoResetEvent()
        self._runner: asyncio.Task[None] | None = None

    # ---- planning ----

    def calculate_sleep(self, board: Board, now: datetime) -> timedelta | None:
        """How long until the next transition is due; None means nothing is pending."""
        next_time: datetime | None = None

        for _, task in board.tasks_in(Lane.DONE):
            due = next_midnight(task.last_change, self._tz)
            if next_time is None or due < next_time:
                next_time = due

        for _, task in board.tasks_in(Lane.INACTIVE):
            due = schedule_ready(task, now)
            if due is not None and (next_time is None or due < next_time):
                next_time = due

        if next_time is None:
            return None
        if next_time > now:
            return next_time - now
        return timedelta(0)

    async def update_board(self, board: Board, now: datetime) -> None:
        """Perform every transition that is due at `now`, judged on `board`."""
        # Tasks that have been in "done" past midnight go back to inactive.
        for task_id, task in board.tasks_in(Lane.DONE):
            if next_midnight(task.last_change, self._tz) <= now:
                await self._move(task_id, Lane.INACTIVE, only_from=Lane.DONE)

        for task_id, task in board.tasks_in(Lane.INACTIVE):
            if is_ready(task, now):
                await self._move(task_id, Lane.READY, only_from=Lane.INACTIVE)

    async def _move(self, task_id: str, lane: Lane, *, only_from: Lane) -> None:
        try:
            await self._board_store.move_task(task_id, lane, 0, only_from=only_from)
        except TaskNotFoundError:
            # Deleted between our read and the move.
            logger.info("Task %s vanished before it could move to %s", task_id, lane)
            return
        logger.info("Task %s -> %s", task_id, lane)

    # ---- loop ----

    def _on_board_change(self, board: Board) -> None:
        self._board_changed.set()

    async def run(self) -> None:
        registration = self._board_store.register_observer(self._on_board_change)
        changed: asyncio.Task[None] | None = None
        try:
            while True:
                # Arm the wake-up before reading so a change made while we
                # compute the sleep is not missed.
                if changed is None:
                    changed = asyncio.ensure_future(self._board_changed.wait())

                board = await self._board_store.read_board()
                now = self._clock.now()
                sleep_for = self.calculate_sleep(board, now)
                logger.debug("Scheduler sleeping for %s", "ever" if sleep_for is None else sleep_for)

                timer = asyncio.ensure_future(self._sleeper.delay(sleep_for))
                try:
                    done, _ = await asyncio.wait({timer, changed}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    if not timer.done():
                        timer.cancel()

                if changed in done:
                    # The board has changed, so reschedule everything.
                    changed.result()
                    changed = None
                    continue

                timer.result()
                await self.update_board(board, self._clock.now())

        except asyncio.CancelledError:
            logger.info("Board scheduler stopped")
            raise
        except Exception:
            logger.critical("Board scheduler crashed", exc_info=True)
            raise
        finally:
            if changed is not None and not changed.done():
                changed.cancel()
            registration.close()

    def start(self) -> asyncio.Task[None]:
        if self._runner is None or self._runner.done():
            self._runner = asyncio.get_running_loop().create_task(self.run(), name="board-scheduler")
        return self._runner

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is None or runner.done():
            return
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
