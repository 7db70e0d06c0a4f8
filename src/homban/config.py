# src/homban/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read at import time; get_settings() builds and caches on first use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

ENV_PREFIX = "HOMBAN"

DEFAULT_MAX_SLEEP_CHUNK_SECONDS = 24 * 24 * 3600


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    board_db_path: Path

    # ---- Scheduler ----
    timezone: str
    max_sleep_chunk_seconds: int

    def tzinfo(self) -> tzinfo | None:
        """Zone used for "local midnight"; None means the system zone."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone in {_k('TIMEZONE')}: {self.timezone!r}") from e

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "homban").strip() or "homban"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/homban"))
        board_db_path = _env_path(_k("BOARD_DB_PATH"), data_dir / "board.sqlite3")

        timezone = _env(_k("TIMEZONE"), "").strip()
        max_sleep_chunk_seconds = _env_int(_k("MAX_SLEEP_CHUNK_SECONDS"), DEFAULT_MAX_SLEEP_CHUNK_SECONDS)
        if max_sleep_chunk_seconds <= 0:
            max_sleep_chunk_seconds = DEFAULT_MAX_SLEEP_CHUNK_SECONDS

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            board_db_path=board_db_path,
            timezone=timezone,
            max_sleep_chunk_seconds=max_sleep_chunk_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Real environment variables win over .env.
    load_dotenv(override=False)
    return Settings.from_env()
