# src/homban/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the board engine.

The engine depends on Protocols instead of concrete implementations.
This keeps persistence/time swappable and makes the scheduler testable with
fake clocks and manually ticked sleepers.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Protocol

from ..board.board_models import Board, TaskId

BoardObserver = Callable[[Board], Awaitable[None] | None]
# Called with every committed board. May be a plain function or a coroutine function.


class Clock(Protocol):
    def now(self) -> datetime: ...


class Sleeper(Protocol):
    """
    Timer used by the scheduler.

    duration=None means "sleep until cancelled". Cancellation is asyncio task
    cancellation; implementations must let CancelledError propagate.
    """

    def delay(self, duration: timedelta | None) -> Awaitable[None]: ...


class BoardRepo(Protocol):
    """
    Whole-board snapshot persistence.

    load() of a store that does not exist yet returns an empty board.
    Errors propagate to the caller; retry policy (if any) belongs here, not in the engine.
    """

    async def load(self) -> Board: ...

    async def save(self, board: Board) -> None: ...


class IdGenerator(Protocol):
    def new_id(self) -> TaskId: ...
