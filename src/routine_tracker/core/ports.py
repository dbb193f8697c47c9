# src/routine_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and the time source swappable and makes testing easier.
"""

from datetime import date
from typing import Any, Protocol


class Clock(Protocol):
    """Source of the current calendar date."""

    def today(self) -> date: ...


class TaskLookup(Protocol):
    """
    The one capability routines need from the task collaborator.

    Task ids must stay stable for as long as a routine references them.
    """

    def get_task(self, task_id: int) -> Any | None: ...


class TaskRepo(TaskLookup, Protocol):
    def add_task(
            self,
            *,
            title: str,
            status: Any = None,  # TaskStatus (kept as Any to avoid import coupling)
            is_routine: bool = False,
            action_date: str | None = None,
            tags: list[str] | None = None,
    ) -> int: ...

    def list_tasks(self, *, limit: int = 50, status: Any | None = None) -> list[Any]: ...

    def update_task_fields(
            self,
            task_id: int,
            *,
            title: str | None = None,
            status: Any | None = None,
            is_routine: bool | None = None,
            action_date: str | None = None,
            tags: list[str] | None = None,
    ) -> bool: ...

    def delete_task(self, task_id: int) -> bool: ...
    def count_tasks(self) -> int: ...


class RoutineRepo(Protocol):
    def create(
            self,
            *,
            task_id: int,
            frequency: Any,
            days_of_week: list[int] | None = None,
            custom_interval: int | None = None,
            time_estimate: str | None = None,
            goal: str | None = None,
            track_streaks: bool = False,
    ) -> int: ...

    def update(
            self,
            routine_id: int,
            *,
            frequency: Any | None = None,
            days_of_week: list[int] | None = None,
            custom_interval: int | None = None,
            time_estimate: str | None = None,
            goal: str | None = None,
            track_streaks: bool | None = None,
    ) -> int: ...

    def delete(self, routine_id: int) -> int: ...
    def delete_by_task_id(self, task_id: int) -> int | None: ...

    def complete(self, routine_id: int) -> int: ...
    def uncomplete(self, routine_id: int) -> int: ...

    def get(self, routine_id: int) -> Any | None: ...
    def get_by_task_id(self, task_id: int) -> Any | None: ...
    def list_routines(self, tasks: TaskLookup, *, limit: int | None = None) -> list[Any]: ...
    def count_routines(self) -> int: ...
