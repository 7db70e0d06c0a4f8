# src/homban/board/board_service.py

from __future__ import annotations

"""
Board mutation engine.

Holds the current board snapshot and applies edits to it one at a time:
- every read and edit goes through a single asyncio.Lock,
- an editor function turns the current Board into a candidate Board,
- a candidate that *is* the input board is a no-op (nothing persisted, nobody notified),
- otherwise the candidate is saved through the BoardRepo, swapped in and published.

Observers get boards through a per-observer queue drained by its own worker task.
That keeps commit order per observer, runs observers independently of each other,
and means a slow observer never holds the lock or delays the next edit.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TypeVar

from ..core.ports import BoardObserver, BoardRepo, Clock, IdGenerator
from .board_models import Board, BoardAndTask, Lane, Task, TaskData, TaskId, TaskNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Undelivered boards per observer before the backlog is reported (and again at every multiple).
DEFAULT_BACKLOG_WARNING = 100


class ObserverRegistration:
    """
    Handle returned by BoardStore.register_observer().

    close() stops future deliveries (boards already queued are dropped).
    Usable as a context manager.
    """

    def __init__(
        self,
        store: BoardStore,
        observer: BoardObserver,
        *,
        backlog_warning: int = DEFAULT_BACKLOG_WARNING,
    ) -> None:
        self._store = store
        self.observer = observer
        self._backlog_warning = max(1, backlog_warning)
        self._queue: asyncio.Queue[Board] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._store._unregister(self)
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        # Unblock anyone waiting in wait_for_observers().
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    def __enter__(self) -> ObserverRegistration:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- delivery ----

    def _offer(self, board: Board) -> None:
        if self.closed:
            return
        self._queue.put_nowait(board)
        backlog = self._queue.qsize()
        if backlog % self._backlog_warning == 0:
            logger.warning("Observer %r is falling behind: %d boards queued", self.observer, backlog)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            board = await self._queue.get()
            try:
                result = self.observer(board)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("An observer threw an exception: %r", self.observer)
            finally:
                self._queue.task_done()

    async def _join(self) -> None:
        await self._queue.join()


class BoardStore:
    """
    Single-writer board store.

    All public coroutines may be called concurrently from any number of tasks.
    """

    def __init__(
        self,
        repo: BoardRepo,
        id_generator: IdGenerator,
        clock: Clock,
        *,
        observer_backlog_warning: int = DEFAULT_BACKLOG_WARNING,
    ) -> None:
        self._repo = repo
        self._id_generator = id_generator
        self._clock = clock
        self._lock = asyncio.Lock()
        self._board: Board | None = None
        self._registrations: dict[int, ObserverRegistration] = {}
        self._observer_backlog_warning = observer_backlog_warning

    # ---- low-level helpers ----

    async def _current(self) -> Board:
        # Caller holds the lock.
        if self._board is None:
            self._board = await self._repo.load()
            logger.info("Board loaded tasks=%d", len(self._board.tasks))
        return self._board

    async def _commit(self, editor: Callable[[Board], tuple[Board, T]]) -> tuple[Board, T]:
        async with self._lock:
            board = await self._current()
            candidate, extra = editor(board)
            if candidate is board:
                return board, extra
            # Raises BoardIntegrityError before anything is saved or published.
            candidate.check_integrity()

            save = asyncio.ensure_future(self._repo.save(candidate))
            try:
                await asyncio.shield(save)
            except asyncio.CancelledError:
                # A write that is already in flight either lands completely or not at all.
                if not save.done():
                    await asyncio.wait({save})
                if not save.cancelled() and save.exception() is None:
                    self._publish(candidate)
                raise

            self._publish(candidate)
            return candidate, extra

    def _publish(self, board: Board) -> None:
        self._board = board
        for registration in tuple(self._registrations.values()):
            registration._offer(board)

    def _unregister(self, registration: ObserverRegistration) -> None:
        self._registrations.pop(id(registration), None)

    # ---- public API ----

    async def read_board(self) -> Board:
        async with self._lock:
            return await self._current()

    async def edit(self, editor: Callable[[Board], Board]) -> Board:
        """Apply editor to the current board; returning the same object means "no change"."""
        board, _ = await self._commit(lambda b: (editor(b), None))
        return board

    def _moved(self, board: Board, task_id: TaskId, lane: Lane, index: int) -> tuple[Board, Task]:
        task = board.get_task(task_id)
        position = board.locate(task_id)
        if position is None:
            raise TaskNotFoundError(task_id)
        current_lane, current_index = position

        source = list(board.lane_tasks(current_lane))
        del source[current_index]
        destination = source if current_lane == lane else list(board.lane_tasks(lane))
        target = min(max(index, 0), len(destination))

        if current_lane == lane and current_index == target:
            return board, task

        destination.insert(target, task_id)

        now = self._clock.now()
        entering_ready = lane == Lane.READY and current_lane != Lane.READY
        entering_inactive = lane == Lane.INACTIVE and current_lane != Lane.INACTIVE
        new_task = replace(
            task,
            last_change=now,
            last_moved_on_to_board_time=now if entering_ready else task.last_moved_on_to_board_time,
            last_moved_off_the_board_time=now if entering_inactive else task.last_moved_off_the_board_time,
        )

        new_board = board.replace_lane(current_lane, source).replace_lane(lane, destination)
        new_board = replace(new_board, tasks={**new_board.tasks, task_id: new_task})
        logger.debug("Task moved id=%s from=%s[%d] to=%s[%d]", task_id, current_lane, current_index, lane, target)
        return new_board, new_task

    async def move_task(
        self,
        task_id: TaskId,
        lane: Lane,
        index: int,
        *,
        only_from: Lane | None = None,
    ) -> BoardAndTask:
        """
        Move a task to position `index` of `lane`.

        The index is clamped to [0, len(lane)]. Moving a task onto its own position,
        or (with only_from) moving a task that has already left `only_from`, changes
        nothing.
        """
        lane = Lane(lane)

        def editor(board: Board) -> tuple[Board, Task]:
            if only_from is not None:
                position = board.locate(task_id)
                if position is None:
                    raise TaskNotFoundError(task_id)
                if position[0] != only_from:
                    return board, board.get_task(task_id)
            return self._moved(board, task_id, lane, index)

        board, task = await self._commit(editor)
        return BoardAndTask(board=board, task_id=task_id, task=task)

    async def set_task_lane(self, task_id: TaskId, lane: Lane) -> BoardAndTask:
        """Move a task to the end of `lane` (no-op if it is already somewhere in `lane`)."""
        lane = Lane(lane)

        def editor(board: Board) -> tuple[Board, Task]:
            position = board.locate(task_id)
            if position is not None and position[0] == lane:
                return board, board.get_task(task_id)
            return self._moved(board, task_id, lane, len(board.lane_tasks(lane)))

        board, task = await self._commit(editor)
        return BoardAndTask(board=board, task_id=task_id, task=task)

    async def create_task(self, data: TaskData) -> BoardAndTask:
        def editor(board: Board) -> tuple[Board, tuple[TaskId, Task]]:
            task_id = self._id_generator.new_id()
            now = self._clock.now()
            task = Task(
                title=data.title,
                description=data.description,
                schedule=data.schedule,
                created=now,
                last_change=now,
                last_moved_on_to_board_time=now,
                last_moved_off_the_board_time=None,
            )
            new_board = replace(
                board,
                tasks={**board.tasks, task_id: task},
                ready=(*board.ready, task_id),
            )
            logger.debug("Task created id=%s title=%r", task_id, data.title)
            return new_board, (task_id, task)

        board, (task_id, task) = await self._commit(editor)
        return BoardAndTask(board=board, task_id=task_id, task=task)

    async def update_task(self, task_id: TaskId, data: TaskData) -> BoardAndTask:
        def editor(board: Board) -> tuple[Board, Task]:
            task = board.get_task(task_id)
            new_task = task.with_data(data, now=self._clock.now())
            logger.debug("Task updated id=%s", task_id)
            return replace(board, tasks={**board.tasks, task_id: new_task}), new_task

        board, task = await self._commit(editor)
        return BoardAndTask(board=board, task_id=task_id, task=task)

    async def delete_task(self, task_id: TaskId) -> Board:
        """Remove a task from the board. Unknown ids are ignored."""

        def editor(board: Board) -> Board:
            if task_id not in board.tasks:
                return board

            tasks = dict(board.tasks)
            del tasks[task_id]
            new_board = replace(board, tasks=tasks)

            position = board.locate(task_id)
            if position is not None:
                lane, _ = position
                new_board = new_board.replace_lane(lane, (t for t in board.lane_tasks(lane) if t != task_id))

            logger.debug("Task deleted id=%s", task_id)
            return new_board

        return await self.edit(editor)

    # ---- observers ----

    def register_observer(self, observer: BoardObserver) -> ObserverRegistration:
        registration = ObserverRegistration(self, observer, backlog_warning=self._observer_backlog_warning)
        self._registrations[id(registration)] = registration
        return registration

    async def wait_for_observers(self) -> None:
        """Wait until every board committed so far has been delivered to every observer."""
        for registration in tuple(self._registrations.values()):
            await registration._join()

    async def aclose(self) -> None:
        for registration in tuple(self._registrations.values()):
            registration.close()
