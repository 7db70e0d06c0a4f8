# src/homban/board/board_models.py

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from typing import ClassVar

from .duration import Duration

TaskId = str


class BoardError(Exception):
    """Base class for board errors."""


class TaskNotFoundError(BoardError, LookupError):
    def __init__(self, task_id: TaskId) -> None:
        super().__init__(f"Unknown task ID: {task_id}")
        self.task_id = task_id


class UnknownScheduleError(BoardError, TypeError):
    """A schedule object that is none of the known variants. Programming error."""


class BoardIntegrityError(BoardError, RuntimeError):
    """The lane lists and the task map disagree."""


class Lane(StrEnum):
    INACTIVE = "inactive"
    READY = "ready"
    IN_PROGRESS = "in-progress"
    DONE = "done"


# Scan order used when locating a task.
LANES: tuple[Lane, ...] = (Lane.INACTIVE, Lane.READY, Lane.IN_PROGRESS, Lane.DONE)

_LANE_FIELDS: dict[Lane, str] = {
    Lane.INACTIVE: "inactive",
    Lane.READY: "ready",
    Lane.IN_PROGRESS: "in_progress",
    Lane.DONE: "done",
}


# ---- schedules ----


@dataclass(frozen=True, slots=True)
class OneTimeSchedule:
    """Ready exactly once, at `when`."""

    kind: ClassVar[str] = "one-time"

    when: datetime


@dataclass(frozen=True, slots=True)
class PeriodicScheduleFollowingActivity:
    """Recurs `period` after the task was last taken off the board; first occurrence is `start`."""

    kind: ClassVar[str] = "periodic-activity"

    start: datetime
    period: Duration


@dataclass(frozen=True, slots=True)
class PeriodicScheduleFollowingCalendar:
    """Recurs `period` after `start` or the last time the task became ready, whichever is later."""

    kind: ClassVar[str] = "periodic-calendar"

    start: datetime
    period: Duration


Schedule = OneTimeSchedule | PeriodicScheduleFollowingActivity | PeriodicScheduleFollowingCalendar


# ---- tasks ----


@dataclass(frozen=True, slots=True)
class TaskData:
    title: str
    description: str
    schedule: Schedule


@dataclass(frozen=True, slots=True)
class Task:
    title: str
    description: str
    schedule: Schedule
    created: datetime
    last_change: datetime
    last_moved_on_to_board_time: datetime
    last_moved_off_the_board_time: datetime | None = None

    def with_data(self, data: TaskData, *, now: datetime) -> Task:
        return replace(
            self,
            title=data.title,
            description=data.description,
            schedule=data.schedule,
            last_change=now,
        )


# ---- board ----


@dataclass(frozen=True, slots=True)
class Board:
    """
    Immutable board snapshot.

    Never mutate a Board: every edit builds a new one. Old snapshots stay valid
    for whoever still holds them (observers, the scheduler).
    """

    tasks: Mapping[TaskId, Task] = field(default_factory=dict)
    ready: tuple[TaskId, ...] = ()
    in_progress: tuple[TaskId, ...] = ()
    done: tuple[TaskId, ...] = ()
    inactive: tuple[TaskId, ...] = ()

    def __post_init__(self) -> None:
        # Freeze whatever the caller passed in.
        if not isinstance(self.tasks, MappingProxyType):
            object.__setattr__(self, "tasks", MappingProxyType(dict(self.tasks)))
        for name in _LANE_FIELDS.values():
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @classmethod
    def empty(cls) -> Board:
        return cls()

    def lane_tasks(self, lane: Lane) -> tuple[TaskId, ...]:
        return getattr(self, _LANE_FIELDS[lane])

    def replace_lane(self, lane: Lane, task_ids: Iterable[TaskId]) -> Board:
        return replace(self, **{_LANE_FIELDS[lane]: tuple(task_ids)})

    def locate(self, task_id: TaskId) -> tuple[Lane, int] | None:
        for lane in LANES:
            ids = self.lane_tasks(lane)
            for index, candidate in enumerate(ids):
                if candidate == task_id:
                    return lane, index
        return None

    def get_task(self, task_id: TaskId) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def tasks_in(self, lane: Lane) -> Iterator[tuple[TaskId, Task]]:
        for task_id in self.lane_tasks(lane):
            yield task_id, self.tasks[task_id]

    def integrity_problems(self) -> list[str]:
        """Describe every violated lane/task invariant (empty list = healthy)."""
        problems: list[str] = []
        seen: dict[TaskId, Lane] = {}

        for lane in LANES:
            for task_id in self.lane_tasks(lane):
                if task_id not in self.tasks:
                    problems.append(f"lane {lane} references non-existent task {task_id}")
                if task_id in seen:
                    problems.append(f"task {task_id} appears in {seen[task_id]} and again in {lane}")
                else:
                    seen[task_id] = lane

        for task_id in self.tasks:
            if task_id not in seen:
                problems.append(f"task {task_id} is not referenced by any lane")

        return problems

    def check_integrity(self) -> None:
        problems = self.integrity_problems()
        if problems:
            raise BoardIntegrityError("; ".join(problems))


@dataclass(frozen=True, slots=True)
class BoardAndTask:
    board: Board
    task_id: TaskId
    task: Task
