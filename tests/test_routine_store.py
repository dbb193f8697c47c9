# tests/test_routine_store.py

from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path

import pytest

from routine_tracker.routines.errors import (
    InvalidRoutineConfig,
    RoutineAlreadyExists,
    RoutineDataError,
    RoutineNotFound,
)
from routine_tracker.routines.routine_models import Frequency
from routine_tracker.routines.routine_store import RoutineStore

from .fakes import DictTaskLookup, FixedClock


def test_create_with_streaks_initializes_history(store: RoutineStore) -> None:
    rid = store.create(task_id=1, frequency=Frequency.DAILY, track_streaks=True)
    assert rid > 0

    r = store.get(rid)
    assert r is not None
    assert r.task_id == 1
    assert r.frequency is Frequency.DAILY
    assert r.track_streaks is True
    assert r.completion_history == []
    assert r.current_streak == 0
    assert r.longest_streak == 0
    assert r.last_completed_date is None


def test_create_without_streaks_leaves_fields_absent(store: RoutineStore) -> None:
    rid = store.create(
        task_id=1,
        frequency="monthly",
        time_estimate="30m",
        goal="pay rent",
        track_streaks=False,
    )
    r = store.get(rid)
    assert r is not None
    assert r.frequency is Frequency.MONTHLY
    assert r.time_estimate == "30m"
    assert r.goal == "pay rent"
    assert r.completion_history is None
    assert r.current_streak is None
    assert r.longest_streak is None


def test_create_rejects_second_routine_for_task(store: RoutineStore) -> None:
    store.create(task_id=7, frequency=Frequency.DAILY)
    with pytest.raises(RoutineAlreadyExists):
        store.create(task_id=7, frequency=Frequency.WEEKLY, days_of_week=[1])
    assert store.count_routines() == 1


def test_weekly_requires_days(store: RoutineStore) -> None:
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency=Frequency.WEEKLY, days_of_week=[])
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency=Frequency.WEEKLY)
    assert store.count_routines() == 0


def test_custom_requires_positive_interval(store: RoutineStore) -> None:
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency=Frequency.CUSTOM, custom_interval=0)
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency=Frequency.CUSTOM, custom_interval=-3)
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency=Frequency.CUSTOM)
    assert store.count_routines() == 0


def test_invalid_days_and_frequency_rejected(store: RoutineStore) -> None:
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency=Frequency.WEEKLY, days_of_week=[7])
    with pytest.raises(InvalidRoutineConfig):
        store.create(task_id=1, frequency="hourly")


def test_weekly_days_are_deduplicated_and_sorted(store: RoutineStore) -> None:
    rid = store.create(task_id=1, frequency=Frequency.WEEKLY, days_of_week=[5, 1, 5, 3])
    r = store.get(rid)
    assert r is not None
    assert r.days_of_week == [1, 3, 5]
    assert r.describe_schedule() == "Weekly (Mon, Wed, Fri)"


def test_update_validates_merged_config(store: RoutineStore) -> None:
    rid = store.create(task_id=1, frequency=Frequency.DAILY)

    with pytest.raises(InvalidRoutineConfig):
        store.update(rid, frequency=Frequency.WEEKLY)
    with pytest.raises(InvalidRoutineConfig):
        store.update(rid, frequency=Frequency.CUSTOM, custom_interval=0)

    assert store.update(rid, frequency=Frequency.CUSTOM, custom_interval=3) == rid
    # Falls back to the stored interval.
    store.update(rid, goal="stretch")
    r = store.get(rid)
    assert r is not None
    assert r.frequency is Frequency.CUSTOM
    assert r.custom_interval == 3
    assert r.goal == "stretch"


def test_update_uses_stored_days_as_fallback(store: RoutineStore) -> None:
    rid = store.create(task_id=1, frequency=Frequency.WEEKLY, days_of_week=[0, 6])
    store.update(rid, frequency=Frequency.DAILY)
    store.update(rid, frequency=Frequency.WEEKLY)
    r = store.get(rid)
    assert r is not None
    assert r.days_of_week == [0, 6]


def test_update_missing_routine(store: RoutineStore) -> None:
    with pytest.raises(RoutineNotFound):
        store.update(999, goal="x")


def test_update_does_not_touch_history(store: RoutineStore, clock: FixedClock) -> None:
    rid = store.create(task_id=1, frequency=Frequency.DAILY, track_streaks=True)
    store.complete(rid)
    store.update(rid, frequency=Frequency.MONTHLY, time_estimate="5m")
    r = store.get(rid)
    assert r is not None
    assert r.completion_history == [clock.today().isoformat()]
    assert r.current_streak == 1
    assert r.longest_streak == 1


def test_enabling_streaks_later_initializes_fields(store: RoutineStore) -> None:
    rid = store.create(task_id=1, frequency=Frequency.DAILY, track_streaks=False)
    store.update(rid, track_streaks=True)
    r = store.get(rid)
    assert r is not None
    assert r.track_streaks is True
    assert r.completion_history == []
    assert r.current_streak == 0
    assert r.longest_streak == 0


def test_delete_and_delete_by_task_id(store: RoutineStore) -> None:
    a = store.create(task_id=1, frequency=Frequency.DAILY)
    b = store.create(task_id=2, frequency=Frequency.DAILY)

    assert store.delete(a) == a
    assert store.get(a) is None
    with pytest.raises(RoutineNotFound):
        store.delete(a)

    assert store.delete_by_task_id(2) == b
    assert store.get_by_task_id(2) is None
    assert store.delete_by_task_id(2) is None
    assert store.delete_by_task_id(12345) is None


def test_task_can_get_a_new_routine_after_delete(store: RoutineStore) -> None:
    store.create(task_id=1, frequency=Frequency.DAILY)
    store.delete_by_task_id(1)
    rid = store.create(task_id=1, frequency=Frequency.MONTHLY)
    r = store.get_by_task_id(1)
    assert r is not None
    assert r.id == rid


def test_list_joins_tasks_and_skips_dangling(store: RoutineStore) -> None:
    first = store.create(task_id=1, frequency=Frequency.DAILY)
    store.create(task_id=2, frequency=Frequency.DAILY)
    third = store.create(task_id=3, frequency=Frequency.DAILY)

    tasks = DictTaskLookup({1: "one", 3: "three"})
    items = store.list_routines(tasks)

    assert [i.routine.id for i in items] == [third, first]
    assert [i.task for i in items] == ["three", "one"]
    assert len(store.list_routines(tasks, limit=1)) == 1


def test_store_reopens_existing_db(tmp_path: Path, clock: FixedClock) -> None:
    db = tmp_path / "routines.sqlite3"
    rid = RoutineStore(db, clock=clock).create(
        task_id=4, frequency=Frequency.CUSTOM, custom_interval=2, track_streaks=True
    )
    again = RoutineStore(db, clock=clock)
    r = again.get(rid)
    assert r is not None
    assert r.custom_interval == 2
    assert r.describe_schedule() == "Every 2 days"


def test_disabling_streaks_keeps_history_and_best(store: RoutineStore, clock: FixedClock) -> None:
    rid = store.create(task_id=1, frequency=Frequency.DAILY, track_streaks=True)
    clock.current = date(2024, 1, 1)
    for _ in range(3):
        store.complete(rid)
        clock.advance()
    history = ["2024-01-03", "2024-01-02", "2024-01-01"]

    store.update(rid, track_streaks=False)
    paused = store.get(rid)
    assert paused is not None
    assert paused.track_streaks is False

    # Completions while paused are not recorded.
    assert store.complete(rid) == rid
    after_complete = store.get(rid)
    assert after_complete == paused

    store.update(rid, track_streaks=True)
    r = store.get(rid)
    assert r is not None
    assert r.track_streaks is True
    assert r.completion_history == history
    assert r.longest_streak == 3
    assert r.current_streak == 3
    assert r.last_completed_date == "2024-01-03"


def _corrupt(db: Path, routine_id: int, column: str, value: str) -> None:
    conn = sqlite3.connect(str(db))
    try:
        conn.execute(f"UPDATE routines SET {column} = ? WHERE id = ?", (value, routine_id))
        conn.commit()
    finally:
        conn.close()


def _raw(db: Path, routine_id: int, column: str) -> str | None:
    conn = sqlite3.connect(str(db))
    try:
        (val,) = conn.execute(
            f"SELECT {column} FROM routines WHERE id = ?", (routine_id,)
        ).fetchone()
        return val
    finally:
        conn.close()


@pytest.mark.parametrize("bad", ["not json", '{"a": 1}', '["2024-13-45"]'])
def test_unreadable_history_is_not_overwritten(
    tmp_path: Path, store: RoutineStore, bad: str
) -> None:
    db = tmp_path / "routines.sqlite3"
    rid = store.create(task_id=1, frequency=Frequency.DAILY, track_streaks=True)
    _corrupt(db, rid, "completion_history", bad)

    with pytest.raises(RoutineDataError) as exc:
        store.complete(rid)
    assert exc.value.routine_id == rid
    assert exc.value.column == "completion_history"

    with pytest.raises(RoutineDataError):
        store.get(rid)
    assert _raw(db, rid, "completion_history") == bad


def test_unreadable_days_of_week_reads_as_empty(tmp_path: Path, store: RoutineStore) -> None:
    rid = store.create(task_id=1, frequency=Frequency.DAILY, track_streaks=True)
    _corrupt(tmp_path / "routines.sqlite3", rid, "days_of_week", "not json")

    r = store.get(rid)
    assert r is not None
    assert r.days_of_week == []
    assert store.complete(rid) == rid
