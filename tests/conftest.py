# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from routine_tracker.cli.bootstrap import create_initial_state
from routine_tracker.core.state import AppState
from routine_tracker.routines.routine_store import RoutineStore

from .fakes import FixedClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="routines-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        routines_db_path=tmp_path / "routines.sqlite3",
        timezone="UTC",
        list_limit=50,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(date(2024, 1, 10))


@pytest.fixture()
def store(tmp_path: Path, clock: FixedClock) -> RoutineStore:
    return RoutineStore(tmp_path / "routines.sqlite3", clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock) -> AppState:
    """
    AppState wired through the real composition root.

    NOTE: We keep real SQLite stores here because their correctness is part
    of what we want to test; only the clock is faked.
    """
    return create_initial_state(settings=settings, clock=clock)
