# src/homban/board/board_repo.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from .board_models import (
    LANES,
    Board,
    BoardIntegrityError,
    Lane,
    OneTimeSchedule,
    PeriodicScheduleFollowingActivity,
    PeriodicScheduleFollowingCalendar,
    Schedule,
    Task,
    TaskId,
    UnknownScheduleError,
)
from .duration import Duration

logger = logging.getLogger(__name__)


class SqliteBoardRepo:
    """
    SQLite board snapshot store.

    The whole board is written in one transaction on every save:
    - tasks: one row per task, schedule flattened into schedule_* columns
    - lanes: (lane, position) -> task_id

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each call opens its own SQLite connection; the async API runs it on a worker thread
    """

    def __init__(self, db_path: str | Path = "board.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteBoardRepo ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    schedule_kind TEXT NOT NULL,
                    schedule_when TEXT,
                    schedule_start TEXT,
                    schedule_period TEXT,
                    created TEXT NOT NULL,
                    last_change TEXT NOT NULL,
                    last_moved_on_to_board_time TEXT NOT NULL,
                    last_moved_off_the_board_time TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS lanes (
                    lane TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    task_id TEXT NOT NULL,
                    PRIMARY KEY (lane, position)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteBoardRepo migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("schedule_when", "TEXT")
            add_col("schedule_start", "TEXT")
            add_col("schedule_period", "TEXT")
            add_col("last_moved_off_the_board_time", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_lanes_task ON lanes(task_id)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _ts(value: datetime | None) -> str | None:
        return value.isoformat() if value is not None else None

    @staticmethod
    def _dt(value: str | None) -> datetime | None:
        return datetime.fromisoformat(value) if value else None

    def _schedule_to_cols(self, schedule: Schedule) -> tuple[str, str | None, str | None, str | None]:
        match schedule:
            case OneTimeSchedule(when=when):
                return schedule.kind, self._ts(when), None, None
            case PeriodicScheduleFollowingActivity(start=start, period=period):
                return schedule.kind, None, self._ts(start), period.format()
            case PeriodicScheduleFollowingCalendar(start=start, period=period):
                return schedule.kind, None, self._ts(start), period.format()
            case _:
                raise UnknownScheduleError(f"Unknown schedule: {type(schedule).__name__}")

    def _row_to_schedule(self, row: sqlite3.Row) -> Schedule:
        kind = row["schedule_kind"]
        if kind == OneTimeSchedule.kind:
            return OneTimeSchedule(when=self._required_dt(row["schedule_when"]))
        if kind == PeriodicScheduleFollowingActivity.kind:
            return PeriodicScheduleFollowingActivity(
                start=self._required_dt(row["schedule_start"]),
                period=Duration.parse(row["schedule_period"] or ""),
            )
        if kind == PeriodicScheduleFollowingCalendar.kind:
            return PeriodicScheduleFollowingCalendar(
                start=self._required_dt(row["schedule_start"]),
                period=Duration.parse(row["schedule_period"] or ""),
            )
        raise UnknownScheduleError(f"Unknown schedule kind in backing store: {kind!r}")

    def _required_dt(self, value: str | None) -> datetime:
        dt = self._dt(value)
        if dt is None:
            raise BoardIntegrityError("Backing store is corrupt: missing timestamp")
        return dt

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            title=str(row["title"]),
            description=str(row["description"] or ""),
            schedule=self._row_to_schedule(row),
            created=self._required_dt(row["created"]),
            last_change=self._required_dt(row["last_change"]),
            last_moved_on_to_board_time=self._required_dt(row["last_moved_on_to_board_time"]),
            last_moved_off_the_board_time=self._dt(row["last_moved_off_the_board_time"]),
        )

    # ---- sync implementation ----

    def load_sync(self) -> Board:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks")
            tasks: dict[TaskId, Task] = {str(row["id"]): self._row_to_task(row) for row in cur.fetchall()}

            lanes: dict[Lane, list[TaskId]] = {lane: [] for lane in LANES}
            cur.execute("SELECT lane, task_id FROM lanes ORDER BY lane, position")
            for row in cur.fetchall():
                try:
                    lane = Lane(row["lane"])
                except ValueError:
                    raise BoardIntegrityError(f"Unknown lane in backing store: {row['lane']!r}") from None
                lanes[lane].append(str(row["task_id"]))
        finally:
            conn.close()

        board = Board(
            tasks=tasks,
            ready=tuple(lanes[Lane.READY]),
            in_progress=tuple(lanes[Lane.IN_PROGRESS]),
            done=tuple(lanes[Lane.DONE]),
            inactive=tuple(lanes[Lane.INACTIVE]),
        )

        # Sanity check: refuse to start from a board whose lanes and tasks disagree.
        problems = board.integrity_problems()
        if problems:
            logger.critical("Board integrity check failed:\n * %s", "\n * ".join(problems))
            raise BoardIntegrityError("Backing store is inconsistent. See logs for more information.")

        logger.debug("Board loaded from %s tasks=%d", self._db_path, len(tasks))
        return board

    def save_sync(self, board: Board) -> None:
        task_rows = []
        for task_id, task in board.tasks.items():
            kind, when, start, period = self._schedule_to_cols(task.schedule)
            task_rows.append(
                (
                    task_id,
                    task.title,
                    task.description,
                    kind,
                    when,
                    start,
                    period,
                    self._ts(task.created),
                    self._ts(task.last_change),
                    self._ts(task.last_moved_on_to_board_time),
                    self._ts(task.last_moved_off_the_board_time),
                )
            )
        lane_rows = [
            (str(lane), position, task_id)
            for lane in LANES
            for position, task_id in enumerate(board.lane_tasks(lane))
        ]

        conn = self._get_conn()
        try:
            with conn:
                conn.execute("DELETE FROM lanes")
                conn.execute("DELETE FROM tasks")
                conn.executemany(
                    """
                    INSERT INTO tasks(
                        id, title, description,
                        schedule_kind, schedule_when, schedule_start, schedule_period,
                        created, last_change, last_moved_on_to_board_time, last_moved_off_the_board_time
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    task_rows,
                )
                conn.executemany("INSERT INTO lanes(lane, position, task_id) VALUES (?, ?, ?)", lane_rows)
            logger.debug("Board saved to %s tasks=%d", self._db_path, len(task_rows))
        finally:
            conn.close()

    # ---- BoardRepo ----

    async def load(self) -> Board:
        return await asyncio.to_thread(self.load_sync)

    async def save(self, board: Board) -> None:
        await asyncio.to_thread(self.save_sync, board)
