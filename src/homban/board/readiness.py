# src/homban/board/readiness.py

"""When does an inactive task become ready again?"""

from __future__ import annotations

from datetime import datetime

from .board_models import (
    OneTimeSchedule,
    PeriodicScheduleFollowingActivity,
    PeriodicScheduleFollowingCalendar,
    Task,
    UnknownScheduleError,
)


def schedule_ready(task: Task, now: datetime) -> datetime | None:
    """
    Return the instant the task should move to Ready, or None for "never".

    Must stay pure: the scheduler uses the same answer both to decide whether a
    transition is due and to decide how long to sleep.
    """
    schedule = task.schedule
    off_board = task.last_moved_off_the_board_time

    match schedule:
        case OneTimeSchedule(when=when):
            # Once it has been taken off the board the one-shot is consumed.
            return when if off_board is None else None

        case PeriodicScheduleFollowingActivity(start=start, period=period):
            if off_board is None or off_board < start:
                return start
            return period.add_to_date(off_board)

        case PeriodicScheduleFollowingCalendar(start=start, period=period):
            return period.add_to_date(max(task.last_moved_on_to_board_time, start))

        case _:
            raise UnknownScheduleError(f"Unknown schedule: {type(schedule).__name__}")


def is_ready(task: Task, now: datetime) -> bool:
    ready_at = schedule_ready(task, now)
    return ready_at is not None and ready_at <= now
