# src/homban/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER = "homban"

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Console floor per project logger. The scheduler logs one debug line per loop
# iteration and the store one per mutation; those belong in board.log only.
# Anything not listed (e.g. board_repo migration notices) follows console_level.
_CONSOLE_FLOOR: dict[str, int] = {
    "homban.board.board_scheduler": logging.INFO,
    "homban.board.board_service": logging.INFO,
}


def _is_own(name: str) -> bool:
    return name == APP_LOGGER or name.startswith(APP_LOGGER + ".")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console view of the log:
    - homban loggers pass, except the per-iteration debug chatter listed above
    - everything else (third parties, captured py.warnings) only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not _is_own(record.name):
            return record.levelno >= logging.ERROR
        return record.levelno >= _CONSOLE_FLOOR.get(record.name, logging.NOTSET)


def setup_logging(
    *,
    log_dir: str | Path = ".local/homban",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_file_name: str = "board.log",
) -> Path:
    """
    Send everything to <log_dir>/<log_file_name> and a filtered view to stderr.

    Replaces any handlers already on the root logger, so call it once at startup.
    Returns the log file path.
    """
    log_file = Path(log_dir) / log_file_name
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(_ConsoleNoiseFilter())

    board_log = logging.FileHandler(str(log_file), encoding="utf-8")
    board_log.setLevel(file_level)
    board_log.setFormatter(formatter)

    root.addHandler(console)
    root.addHandler(board_log)

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return log_file
