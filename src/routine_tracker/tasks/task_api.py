# src/routine_tracker/tasks/task_api.py

"""
Task-side helpers that keep tasks and routines consistent.

The routine store only knows task ids. Anything that removes a task, or stops
a task from being a routine, goes through here so the routine row goes with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.state import AppState
from ..routines.routine_models import Frequency, Routine
from ..routines.streaks import StreakStats, streaks_as_of

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RoutineProgress:
    routine: Routine
    streaks: StreakStats
    done_today: bool


def delete_task(state: AppState, task_id: int) -> bool:
    """Delete a task and, first, any routine it owns."""
    routine_id = state.routine_store.delete_by_task_id(task_id)
    if routine_id is not None:
        logger.info("Removed routine id=%s with task id=%s", routine_id, task_id)
    return state.task_store.delete_task(task_id)


def set_task_routine_flag(state: AppState, task_id: int, is_routine: bool) -> bool:
    """
    Flip a task's is_routine flag.

    Demoting a task to a plain task deletes its routine.
    Returns False if the task does not exist.
    """
    if not state.task_store.update_task_fields(task_id, is_routine=is_routine):
        return False
    if not is_routine:
        routine_id = state.routine_store.delete_by_task_id(task_id)
        if routine_id is not None:
            logger.info("Task id=%s demoted; removed routine id=%s", task_id, routine_id)
    return True


def save_routine_for_task(
    state: AppState,
    task_id: int,
    *,
    frequency: Frequency | str = Frequency.DAILY,
    days_of_week: list[int] | None = None,
    custom_interval: int | None = None,
    time_estimate: str | None = None,
    goal: str | None = None,
    track_streaks: bool = False,
) -> int:
    """
    Create the task's routine, or update it if one already exists.

    Also marks the task as a routine. Raises LookupError for an unknown task.
    """
    if state.task_store.get_task(task_id) is None:
        raise LookupError(f"Task not found: {task_id}")

    existing = state.routine_store.get_by_task_id(task_id)
    if existing is None:
        routine_id = state.routine_store.create(
            task_id=task_id,
            frequency=frequency,
            days_of_week=days_of_week,
            custom_interval=custom_interval,
            time_estimate=time_estimate,
            goal=goal,
            track_streaks=track_streaks,
        )
    else:
        routine_id = state.routine_store.update(
            existing.id,
            frequency=frequency,
            days_of_week=days_of_week,
            custom_interval=custom_interval,
            time_estimate=time_estimate,
            goal=goal,
            track_streaks=track_streaks,
        )

    state.task_store.update_task_fields(task_id, is_routine=True)
    return routine_id


def routine_progress(state: AppState, routine_id: int) -> RoutineProgress | None:
    routine = state.routine_store.get(routine_id)
    if routine is None:
        return None
    today = state.clock.today()
    return RoutineProgress(
        routine=routine,
        streaks=streaks_as_of(routine, today),
        done_today=routine.is_completed_on(today),
    )
