# src/routine_tracker/routines/streaks.py

from __future__ import annotations

"""
Streak engine.

Pure functions over a routine's completion history:
- compute_streaks() derives (current, longest) from a set of calendar dates,
- mark_complete() / mark_incomplete() compute the state a routine moves to
  when today's date is added or removed.

Nothing here touches storage or reads the wall clock; "today" is always passed in.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .routine_models import Routine

ONE_DAY = timedelta(days=1)


@dataclass(slots=True, frozen=True)
class StreakStats:
    current: int
    longest: int


@dataclass(slots=True, frozen=True)
class CompletionUpdate:
    """New history and derived fields to persist after a transition."""

    completion_history: list[str]
    last_completed_date: str | None
    current_streak: int
    longest_streak: int


def _as_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def normalize_history(history: Iterable[str | date]) -> list[str]:
    """Deduplicate and sort ISO dates, most recent first."""
    days = {_as_date(d) for d in history}
    return [d.isoformat() for d in sorted(days, reverse=True)]


def compute_streaks(history: Iterable[str | date], today: date) -> StreakStats:
    """
    Derive streak counts from completion dates.

    current: length of the consecutive run ending at the most recent date,
             but only while that date is today or yesterday (otherwise 0).
    longest: length of the longest consecutive run anywhere in the history.
    """
    days = sorted({_as_date(d) for d in history}, reverse=True)
    if not days:
        return StreakStats(current=0, longest=0)

    current = 0
    if days[0] == today or days[0] == today - ONE_DAY:
        current = 1
        for newer, older in zip(days, days[1:]):
            if newer - older != ONE_DAY:
                break
            current += 1

    longest = run = 1
    for newer, older in zip(days, days[1:]):
        run = run + 1 if newer - older == ONE_DAY else 1
        longest = max(longest, run)

    return StreakStats(current=current, longest=longest)


def mark_complete(routine: Routine, today: date) -> CompletionUpdate | None:
    """
    Add today to the history.

    Returns None when there is nothing to write: streak tracking is off,
    or today is already recorded.
    """
    if not routine.track_streaks:
        return None

    key = today.isoformat()
    history = normalize_history(routine.completion_history or ())
    if key in history:
        return None

    new_history = normalize_history([*history, key])
    stats = compute_streaks(new_history, today)
    return CompletionUpdate(
        completion_history=new_history,
        last_completed_date=key,
        current_streak=stats.current,
        # High-water mark: never lower than what was already persisted.
        longest_streak=max(stats.longest, routine.longest_streak or 0),
    )


def mark_incomplete(routine: Routine, today: date) -> CompletionUpdate | None:
    """
    Remove today from the history.

    Returns None when streak tracking is off or today is not recorded.
    The persisted longest streak is carried over unchanged.
    """
    if not routine.track_streaks:
        return None

    key = today.isoformat()
    history = normalize_history(routine.completion_history or ())
    if key not in history:
        return None

    new_history = [d for d in history if d != key]
    stats = compute_streaks(new_history, today)
    return CompletionUpdate(
        completion_history=new_history,
        last_completed_date=new_history[0] if new_history else None,
        current_streak=stats.current,
        longest_streak=routine.longest_streak or 0,
    )


def streaks_as_of(routine: Routine, today: date) -> StreakStats:
    """
    Read-side view of a routine's streaks on a given day.

    The persisted current streak goes stale once a day is missed; this
    recomputes it from history while keeping the persisted high-water mark.
    """
    if not routine.track_streaks:
        return StreakStats(current=0, longest=0)
    stats = compute_streaks(routine.completion_history or (), today)
    return StreakStats(
        current=stats.current,
        longest=max(stats.longest, routine.longest_streak or 0),
    )
