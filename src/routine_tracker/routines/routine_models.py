# src/routine_tracker/routines/routine_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any


class Frequency(StrEnum):
    """
    How often a routine recurs.

    Stored for display only: completion is accepted on any day regardless
    of the configured schedule.
    """

    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    CUSTOM = "Custom"

    @classmethod
    def parse(cls, raw: str | Frequency) -> Frequency:
        """Case-insensitive lookup by value ("weekly" -> WEEKLY)."""
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"unknown frequency: {raw!r}")


# Sunday=0 ... Saturday=6
WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(slots=True)
class Routine:
    id: int
    task_id: int
    frequency: Frequency
    created_at: float
    updated_at: float

    days_of_week: list[int] | None = None
    custom_interval: int | None = None
    time_estimate: str | None = None
    goal: str | None = None

    track_streaks: bool = False
    # ISO dates, most recent first, no duplicates.
    completion_history: list[str] | None = None
    last_completed_date: str | None = None
    current_streak: int | None = None
    longest_streak: int | None = None

    def is_completed_on(self, day: date) -> bool:
        return day.isoformat() in (self.completion_history or ())

    def describe_schedule(self) -> str:
        if self.frequency is Frequency.WEEKLY and self.days_of_week:
            days = ", ".join(WEEKDAY_NAMES[d] for d in self.days_of_week)
            return f"Weekly ({days})"
        if self.frequency is Frequency.CUSTOM and self.custom_interval:
            unit = "day" if self.custom_interval == 1 else "days"
            return f"Every {self.custom_interval} {unit}"
        return self.frequency.value


@dataclass(slots=True, frozen=True)
class RoutineWithTask:
    """A routine joined with the task that owns it."""

    routine: Routine
    task: Any
