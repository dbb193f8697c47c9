# src/routine_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every value has a usable default so a bare checkout runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

ENV_PREFIX = "ROUTINES"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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


def _env_timezone(name: str, default: str) -> str:
    """Return a valid IANA zone name; unknown zones fall back to the default."""
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    if raw.upper() == "UTC":
        return "UTC"
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return raw


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Calendar ----
    # Zone used to decide which calendar day "today" is.
    timezone: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    routines_db_path: Path

    # ---- Display ----
    list_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "routines").strip() or "routines"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        timezone = _env_timezone(_k("TIMEZONE"), "UTC")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/routines"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        routines_db_path = _env_path(_k("ROUTINES_DB_PATH"), data_dir / "routines.sqlite3")

        list_limit = max(1, _env_int(_k("LIST_LIMIT"), 50))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            timezone=timezone,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            routines_db_path=routines_db_path,
            list_limit=list_limit,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
