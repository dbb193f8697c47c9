# src/routine_tracker/routines/errors.py

from __future__ import annotations


class RoutineError(Exception):
    """Base class for failures of a single routine operation."""


class RoutineNotFound(RoutineError, LookupError):
    def __init__(self, routine_id: int) -> None:
        super().__init__(f"Routine not found: {routine_id}")
        self.routine_id = routine_id


class RoutineAlreadyExists(RoutineError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"Routine already exists for task {task_id}")
        self.task_id = task_id


class InvalidRoutineConfig(RoutineError, ValueError):
    """Frequency-specific fields are missing or out of range."""


class RoutineDataError(RoutineError):
    """A stored column cannot be decoded; the row needs manual repair."""

    def __init__(self, routine_id: int, column: str, raw: str) -> None:
        super().__init__(f"Routine {routine_id}: unreadable {column}: {raw!r}")
        self.routine_id = routine_id
        self.column = column
        self.raw = raw
