# src/routine_tracker/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .ports import Clock, RoutineRepo, TaskRepo


@dataclass
class AppState:
    """Everything a command or connector needs, wired once at startup."""

    settings: object
    task_store: TaskRepo
    routine_store: RoutineRepo
    clock: Clock

    # Serializes command handling when more than one front-end shares the state.
    lock: threading.Lock = field(default_factory=threading.Lock)
