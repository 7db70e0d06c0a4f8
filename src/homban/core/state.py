# src/homban/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..board.board_scheduler import BoardScheduler
from ..board.board_service import BoardStore
from ..config import Settings
from .ports import BoardRepo, Clock, IdGenerator, Sleeper


@dataclass
class AppState:
    """
    Everything the running process owns, wired once in cli.bootstrap.

    The board store and the scheduler share the same clock; the scheduler
    observes the store to wake up on changes.
    """

    settings: Settings

    repo: BoardRepo
    clock: Clock
    sleeper: Sleeper
    id_generator: IdGenerator

    board_store: BoardStore
    scheduler: BoardScheduler
