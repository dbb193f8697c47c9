# src/routine_tracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    """Where a task sits in the user's workflow."""

    ACTIVE = "active"
    WAITING_ON = "waiting_on"
    SOMEDAY_MAYBE = "someday_maybe"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except ValueError:
            return cls.ACTIVE


@dataclass(slots=True)
class Task:
    id: int
    title: str
    status: TaskStatus
    created_at: float
    updated_at: float

    is_routine: bool = False
    action_date: str | None = None  # ISO date, when to look at the task again
    tags: list[str] = field(default_factory=list)
