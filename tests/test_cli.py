# tests/test_cli.py

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from homban.board.board_repo import SqliteBoardRepo
from homban.cli.bootstrap import create_initial_state
from homban.cli.main import run
from homban.config import Settings
from homban.logging_setup import _ConsoleNoiseFilter, setup_logging


def _settings(tmp_path: Path) -> Settings:
    return Settings(
        app_name="homban-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        board_db_path=tmp_path / "db" / "board.sqlite3",
        timezone="",
        max_sleep_chunk_seconds=60,
    )


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in handlers:
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_bootstrap_wires_sqlite_store(tmp_path: Path) -> None:
    state = create_initial_state(settings=_settings(tmp_path))

    assert isinstance(state.repo, SqliteBoardRepo)
    assert state.settings.data_dir.is_dir()
    assert state.settings.board_db_path.exists()
    assert state.scheduler is not None


@pytest.mark.asyncio
async def test_run_reports_a_crashed_scheduler(tmp_path: Path) -> None:
    class BrokenSleeper:
        def delay(self, duration: timedelta | None):
            raise RuntimeError("no timers today")

    state = create_initial_state(settings=_settings(tmp_path))
    state.scheduler._sleeper = BrokenSleeper()

    assert await run(state) == 1
    assert state.board_store._registrations == {}


def test_console_filter_keeps_own_logs_and_hides_noise() -> None:
    f = _ConsoleNoiseFilter()

    def rec(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert f.filter(rec("homban.board.board_repo", logging.INFO))
    assert f.filter(rec("homban.board.board_repo", logging.DEBUG))
    assert f.filter(rec("homban.board.board_scheduler", logging.INFO))
    assert not f.filter(rec("homban.board.board_scheduler", logging.DEBUG))
    assert not f.filter(rec("homban.board.board_service", logging.DEBUG))
    assert not f.filter(rec("homban_other", logging.WARNING))
    assert not f.filter(rec("py.warnings", logging.WARNING))
    assert not f.filter(rec("sqlite3", logging.INFO))
    assert f.filter(rec("sqlite3", logging.ERROR))


def test_setup_logging_writes_the_board_log(tmp_path: Path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path, console_level=logging.WARNING)
    assert log_file == tmp_path / "board.log"
    logging.getLogger("homban.board.board_scheduler").debug("hello file")
    for h in logging.getLogger().handlers:
        h.flush()

    assert "hello file" in (tmp_path / "board.log").read_text(encoding="utf-8")
