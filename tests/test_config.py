# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from routine_tracker.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ROUTINES_DATA_DIR",
        "ROUTINES_TASKS_DB_PATH",
        "ROUTINES_ROUTINES_DB_PATH",
        "ROUTINES_TIMEZONE",
        "ROUTINES_LIST_LIMIT",
        "ROUTINES_CONSOLE_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.timezone == "UTC"
    assert s.console_enabled is True
    assert s.tasks_db_path == s.data_dir / "tasks.sqlite3"
    assert s.routines_db_path == s.data_dir / "routines.sqlite3"
    assert s.list_limit == 50


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ROUTINES_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("ROUTINES_TASKS_DB_PATH", raising=False)
    monkeypatch.delenv("ROUTINES_ROUTINES_DB_PATH", raising=False)
    monkeypatch.setenv("ROUTINES_TIMEZONE", "utc")
    monkeypatch.setenv("ROUTINES_CONSOLE_ENABLED", "off")
    monkeypatch.setenv("ROUTINES_LIST_LIMIT", "not-a-number")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.timezone == "UTC"
    assert s.console_enabled is False
    assert s.list_limit == 50


def test_unknown_timezone_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROUTINES_TIMEZONE", "Mars/Olympus_Mons")
    assert Settings.from_env().timezone == "UTC"
