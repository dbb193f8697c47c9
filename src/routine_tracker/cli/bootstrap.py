# src/routine_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete stores and the clock into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock
from ..core.state import AppState
from ..routines.routine_store import RoutineStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.routines_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and the clock injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if clock is None:
        clock = SystemClock(getattr(settings, "timezone", "UTC"))

    state = AppState(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path),
        routine_store=RoutineStore(settings.routines_db_path, clock=clock),
        clock=clock,
    )
    logger.debug("AppState created (today=%s)", clock.today())
    return state
