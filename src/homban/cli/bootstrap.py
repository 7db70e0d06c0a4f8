# src/homban/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (SQLite repo, system clock, asyncio sleeper,
  UUID ids) into the BoardStore and BoardScheduler held by AppState.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..board.board_repo import SqliteBoardRepo
from ..board.board_scheduler import BoardScheduler
from ..board.board_service import BoardStore
from ..board.runtime import AsyncioSleeper, SystemClock, UuidGenerator
from ..config import Settings, get_settings
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.board_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    tz = settings.tzinfo()
    clock = SystemClock(tz)
    sleeper = AsyncioSleeper(max_chunk=timedelta(seconds=settings.max_sleep_chunk_seconds))
    id_generator = UuidGenerator()
    repo = SqliteBoardRepo(settings.board_db_path)

    board_store = BoardStore(repo, id_generator, clock)
    scheduler = BoardScheduler(board_store, clock, sleeper, tz=tz)

    logger.debug("State wired db=%s tz=%s", settings.board_db_path, settings.timezone or "local")
    return AppState(
        settings=settings,
        repo=repo,
        clock=clock,
        sleeper=sleeper,
        id_generator=id_generator,
        board_store=board_store,
        scheduler=scheduler,
    )
