# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from homban.board.board_models import Board


@dataclass(slots=True)
class FakeClock:
    now_value: datetime

    def now(self) -> datetime:
        return self.now_value


@dataclass(slots=True)
class PendingDelay:
    duration: timedelta | None
    future: asyncio.Future[None]


@dataclass(slots=True)
class FakeSleeper:
    """
    Sleeper whose delays only finish when the test calls tick().

    tick() completes the oldest delay that is still pending and advances the
    clock by its duration, so "time passes" exactly as far as the scheduler asked.
    """

    clock: FakeClock
    requests: list[PendingDelay] = field(default_factory=list)

    def delay(self, duration: timedelta | None) -> asyncio.Future[None]:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.requests.append(PendingDelay(duration=duration, future=fut))
        return fut

    @property
    def durations(self) -> list[timedelta | None]:
        return [r.duration for r in self.requests]

    def pending(self) -> list[PendingDelay]:
        return [r for r in self.requests if not r.future.done()]

    def tick(self) -> bool:
        for request in self.pending():
            if request.duration is not None:
                self.clock.now_value += request.duration
            request.future.set_result(None)
            return True
        return False


class InMemoryBoardRepo:
    """BoardRepo that keeps the last saved board and counts calls."""

    def __init__(self, board: Board | None = None) -> None:
        self.board = board if board is not None else Board.empty()
        self.load_calls = 0
        self.saved: list[Board] = []
        self.fail_next_save: Exception | None = None

    async def load(self) -> Board:
        self.load_calls += 1
        return self.board

    async def save(self, board: Board) -> None:
        if self.fail_next_save is not None:
            exc, self.fail_next_save = self.fail_next_save, None
            raise exc
        self.saved.append(board)
        self.board = board


class GatedBoardRepo(InMemoryBoardRepo):
    """InMemoryBoardRepo whose save() blocks until the test opens the gate."""

    def __init__(self, board: Board | None = None) -> None:
        super().__init__(board)
        self.gate = asyncio.Event()
        self.saving = False

    async def save(self, board: Board) -> None:
        self.saving = True
        await self.gate.wait()
        await super().save(board)


class SequentialIdGenerator:
    def __init__(self, prefix: str = "task") -> None:
        self._prefix = prefix
        self._n = 0

    def new_id(self) -> str:
        self._n += 1
        return f"{self._prefix}-{self._n}"


async def wait_until(predicate, *, timeout: float = 1.0) -> None:
    """Yield to the event loop until predicate() is true."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout)
