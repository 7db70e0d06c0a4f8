# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from homban.board.board_models import (
    Board,
    OneTimeSchedule,
    PeriodicScheduleFollowingActivity,
    Task,
    TaskData,
)
from homban.board.board_service import BoardStore
from homban.board.duration import Duration

from .fakes import FakeClock, FakeSleeper, InMemoryBoardRepo, SequentialIdGenerator

T0 = datetime(2023, 1, 22, 0, 59, 0, tzinfo=timezone.utc)


def make_task(
    *,
    title: str = "Water the plants",
    schedule=None,
    at: datetime = T0,
    on_board: datetime | None = None,
    off_board: datetime | None = None,
) -> Task:
    return Task(
        title=title,
        description="",
        schedule=schedule or OneTimeSchedule(when=at),
        created=at,
        last_change=at,
        last_moved_on_to_board_time=on_board or at,
        last_moved_off_the_board_time=off_board,
    )


def make_data(title: str = "Vacuum", schedule=None) -> TaskData:
    return TaskData(
        title=title,
        description=f"{title} description",
        schedule=schedule
        or PeriodicScheduleFollowingActivity(start=T0, period=Duration.parse("1w")),
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def sleeper(clock: FakeClock) -> FakeSleeper:
    return FakeSleeper(clock)


@pytest.fixture()
def repo() -> InMemoryBoardRepo:
    return InMemoryBoardRepo(Board.empty())


@pytest.fixture()
def store(repo: InMemoryBoardRepo, clock: FakeClock) -> BoardStore:
    return BoardStore(repo, SequentialIdGenerator(), clock)
