# src/routine_tracker/routines/routine_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from datetime import date
from pathlib import Path
from typing import Any

from ..core.clock import SystemClock
from ..core.ports import Clock, TaskLookup
from .errors import (
    InvalidRoutineConfig,
    RoutineAlreadyExists,
    RoutineDataError,
    RoutineNotFound,
)
from .routine_models import Frequency, Routine, RoutineWithTask
from .streaks import CompletionUpdate, mark_complete, mark_incomplete

logger = logging.getLogger(__name__)


def _validate_days(days_of_week: Iterable[int]) -> list[int]:
    out: set[int] = set()
    for d in days_of_week:
        if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6:
            raise InvalidRoutineConfig(f"Day of week must be an integer 0-6 (Sunday=0), got {d!r}")
        out.add(d)
    return sorted(out)


def validate_schedule(
    frequency: Frequency | str,
    days_of_week: Iterable[int] | None,
    custom_interval: int | None,
) -> tuple[Frequency, list[int] | None, int | None]:
    """
    Check the frequency-specific fields and return them normalized.

    - Weekly needs at least one day of week.
    - Custom needs an interval > 0.
    Fields that the frequency does not use are kept as given (they are ignored).
    """
    try:
        freq = Frequency.parse(frequency)
    except ValueError as e:
        raise InvalidRoutineConfig(str(e)) from e

    days = _validate_days(days_of_week) if days_of_week is not None else None

    if custom_interval is not None and (
        isinstance(custom_interval, bool) or not isinstance(custom_interval, int)
    ):
        raise InvalidRoutineConfig(f"Custom interval must be an integer, got {custom_interval!r}")

    if freq is Frequency.CUSTOM and (custom_interval is None or custom_interval <= 0):
        raise InvalidRoutineConfig("Custom interval must be greater than 0")

    if freq is Frequency.WEEKLY and not days:
        raise InvalidRoutineConfig("Weekly frequency requires at least one day of week")

    return freq, days, custom_interval


class RoutineStore:
    """
    SQLite routine store.

    One row per routine; task_id is unique so a task owns at most one routine.
    List-valued fields (days_of_week, completion_history) are JSON text.

    Thread-safety:
    - each method opens its own SQLite connection
    - read-modify-write operations run in a BEGIN IMMEDIATE transaction, so the
      write lock is held from the read of completion_history until the commit
    """

    def __init__(
        self,
        db_path: str | Path = "routines.sqlite3",
        *,
        clock: Clock | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._ensure_schema()
        logger.info("RoutineStore ready db=%s total=%s", self._db_path, self.count_routines())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _write_txn(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS routines (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    frequency TEXT NOT NULL,
                    days_of_week TEXT,
                    custom_interval INTEGER,
                    time_estimate TEXT,
                    goal TEXT,
                    track_streaks INTEGER NOT NULL DEFAULT 0,
                    completion_history TEXT,
                    last_completed_date TEXT,
                    current_streak INTEGER,
                    longest_streak INTEGER,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(routines)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE routines ADD COLUMN {name} {decl}")
                logger.info("RoutineStore migration: added column %s", name)

            add_col("time_estimate", "TEXT")
            add_col("goal", "TEXT")
            add_col("last_completed_date", "TEXT")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_routines_task ON routines(task_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _list_to_str(values: list[Any] | None) -> str | None:
        if values is None:
            return None
        return json.dumps(values)

    @staticmethod
    def _str_to_list(s: str | None) -> list[Any] | None:
        if s is None:
            return None
        try:
            val = json.loads(s)
        except ValueError:
            logger.warning("Unreadable JSON list in routines table: %r", s)
            return []
        return val if isinstance(val, list) else []

    @staticmethod
    def _history_from_row(row: sqlite3.Row) -> list[str] | None:
        """
        Decode completion_history strictly.

        History is the source of truth for streaks: a broken value raises
        instead of being read as empty and overwritten by the next complete().
        """
        raw = row["completion_history"]
        if raw is None:
            return None
        try:
            val = json.loads(raw)
            if not isinstance(val, list):
                raise ValueError("not a list")
            return [date.fromisoformat(str(d)).isoformat() for d in val]
        except ValueError as e:
            raise RoutineDataError(int(row["id"]), "completion_history", raw) from e

    def _row_to_routine(self, row: sqlite3.Row) -> Routine:
        days = self._str_to_list(row["days_of_week"])
        history = self._history_from_row(row)
        return Routine(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            frequency=Frequency.parse(row["frequency"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            days_of_week=[int(d) for d in days] if days is not None else None,
            custom_interval=(
                int(row["custom_interval"]) if row["custom_interval"] is not None else None
            ),
            time_estimate=row["time_estimate"],
            goal=row["goal"],
            track_streaks=bool(row["track_streaks"]),
            completion_history=history,
            last_completed_date=row["last_completed_date"],
            current_streak=(
                int(row["current_streak"]) if row["current_streak"] is not None else None
            ),
            longest_streak=(
                int(row["longest_streak"]) if row["longest_streak"] is not None else None
            ),
        )

    def _fetch(self, conn: sqlite3.Connection, routine_id: int) -> Routine | None:
        row = conn.execute("SELECT * FROM routines WHERE id = ?", (int(routine_id),)).fetchone()
        return self._row_to_routine(row) if row else None

    def _fetch_by_task(self, conn: sqlite3.Connection, task_id: int) -> Routine | None:
        row = conn.execute(
            "SELECT * FROM routines WHERE task_id = ?", (int(task_id),)
        ).fetchone()
        return self._row_to_routine(row) if row else None

    def _apply_completion(
        self, conn: sqlite3.Connection, routine_id: int, update: CompletionUpdate
    ) -> None:
        conn.execute(
            """
            UPDATE routines
            SET completion_history = ?,
                last_completed_date = ?,
                current_streak = ?,
                longest_streak = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                self._list_to_str(update.completion_history),
                update.last_completed_date,
                update.current_streak,
                update.longest_streak,
                time.time(),
                int(routine_id),
            ),
        )

    # ---- public API ----

    def count_routines(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM routines").fetchone()
            return int(n)
        finally:
            conn.close()

    def create(
        self,
        *,
        task_id: int,
        frequency: Frequency | str,
        days_of_week: list[int] | None = None,
        custom_interval: int | None = None,
        time_estimate: str | None = None,
        goal: str | None = None,
        track_streaks: bool = False,
    ) -> int:
        freq, days, interval = validate_schedule(frequency, days_of_week, custom_interval)
        track = bool(track_streaks)
        now = time.time()

        with self._write_txn() as conn:
            if self._fetch_by_task(conn, task_id) is not None:
                raise RoutineAlreadyExists(task_id)
            try:
                cur = conn.execute(
                    """
                    INSERT INTO routines(
                        task_id, frequency, days_of_week, custom_interval,
                        time_estimate, goal, track_streaks,
                        completion_history, current_streak, longest_streak,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        int(task_id),
                        freq.value,
                        self._list_to_str(days),
                        interval,
                        time_estimate,
                        goal,
                        int(track),
                        self._list_to_str([]) if track else None,
                        0 if track else None,
                        0 if track else None,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise RoutineAlreadyExists(task_id) from e

            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for routines insert")
            routine_id = int(rowid)

        logger.debug(
            "Routine created id=%s task_id=%s frequency=%s track_streaks=%s",
            routine_id,
            task_id,
            freq.value,
            track,
        )
        return routine_id

    def update(
        self,
        routine_id: int,
        *,
        frequency: Frequency | str | None = None,
        days_of_week: list[int] | None = None,
        custom_interval: int | None = None,
        time_estimate: str | None = None,
        goal: str | None = None,
        track_streaks: bool | None = None,
    ) -> int:
        """
        Patch configuration fields; None means "leave as is".

        The merged configuration is validated as a whole. History and streak
        fields are not touched, except that enabling streak tracking on a
        routine that never had it initializes them to empty/zero.
        """
        with self._write_txn() as conn:
            existing = self._fetch(conn, routine_id)
            if existing is None:
                raise RoutineNotFound(routine_id)

            freq, days, interval = validate_schedule(
                frequency if frequency is not None else existing.frequency,
                days_of_week if days_of_week is not None else existing.days_of_week,
                custom_interval if custom_interval is not None else existing.custom_interval,
            )

            fields: list[str] = ["frequency = ?", "days_of_week = ?", "custom_interval = ?"]
            params: list[Any] = [freq.value, self._list_to_str(days), interval]

            if time_estimate is not None:
                fields.append("time_estimate = ?")
                params.append(time_estimate)

            if goal is not None:
                fields.append("goal = ?")
                params.append(goal)

            if track_streaks is not None:
                fields.append("track_streaks = ?")
                params.append(int(bool(track_streaks)))
                if track_streaks and existing.completion_history is None:
                    fields.append("completion_history = ?")
                    params.append(self._list_to_str([]))
                    fields.append("current_streak = ?")
                    params.append(0)
                    fields.append("longest_streak = ?")
                    params.append(0)

            fields.append("updated_at = ?")
            params.append(time.time())
            params.append(int(routine_id))

            conn.execute(f"UPDATE routines SET {', '.join(fields)} WHERE id = ?", params)

        logger.debug("Routine updated id=%s frequency=%s", routine_id, freq.value)
        return routine_id

    def delete(self, routine_id: int) -> int:
        with self._write_txn() as conn:
            cur = conn.execute("DELETE FROM routines WHERE id = ?", (int(routine_id),))
            if cur.rowcount == 0:
                raise RoutineNotFound(routine_id)
        logger.debug("Routine deleted id=%s", routine_id)
        return routine_id

    def delete_by_task_id(self, task_id: int) -> int | None:
        """Delete the routine owned by task_id; returns its id, or None if there was none."""
        with self._write_txn() as conn:
            existing = self._fetch_by_task(conn, task_id)
            if existing is None:
                return None
            conn.execute("DELETE FROM routines WHERE id = ?", (existing.id,))
        logger.debug("Routine deleted id=%s (task_id=%s)", existing.id, task_id)
        return existing.id

    def complete(self, routine_id: int) -> int:
        """
        Mark the routine as done today and refresh its streaks.

        Idempotent per calendar day. Without streak tracking nothing is stored.
        """
        today = self._clock.today()
        with self._write_txn() as conn:
            routine = self._fetch(conn, routine_id)
            if routine is None:
                raise RoutineNotFound(routine_id)
            update = mark_complete(routine, today)
            if update is None:
                logger.debug("Routine complete no-op id=%s day=%s", routine_id, today)
                return routine.id
            self._apply_completion(conn, routine.id, update)

        logger.debug(
            "Routine completed id=%s day=%s current=%s longest=%s",
            routine_id,
            today,
            update.current_streak,
            update.longest_streak,
        )
        return routine.id

    def uncomplete(self, routine_id: int) -> int:
        """Remove today's completion. Longest streak is never lowered."""
        today = self._clock.today()
        with self._write_txn() as conn:
            routine = self._fetch(conn, routine_id)
            if routine is None:
                raise RoutineNotFound(routine_id)
            update = mark_incomplete(routine, today)
            if update is None:
                logger.debug("Routine uncomplete no-op id=%s day=%s", routine_id, today)
                return routine.id
            self._apply_completion(conn, routine.id, update)

        logger.debug(
            "Routine uncompleted id=%s day=%s current=%s",
            routine_id,
            today,
            update.current_streak,
        )
        return routine.id

    def get(self, routine_id: int) -> Routine | None:
        conn = self._get_conn()
        try:
            return self._fetch(conn, routine_id)
        finally:
            conn.close()

    def get_by_task_id(self, task_id: int) -> Routine | None:
        conn = self._get_conn()
        try:
            return self._fetch_by_task(conn, task_id)
        finally:
            conn.close()

    def list_routines(
        self, tasks: TaskLookup, *, limit: int | None = None
    ) -> list[RoutineWithTask]:
        """
        All routines, newest first, each joined with its owning task.

        Routines whose task no longer exists are skipped.
        """
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM routines ORDER BY id DESC").fetchall()
        finally:
            conn.close()

        out: list[RoutineWithTask] = []
        for row in rows:
            routine = self._row_to_routine(row)
            task = tasks.get_task(routine.task_id)
            if task is None:
                logger.debug(
                    "Skipping routine id=%s: task_id=%s no longer exists",
                    routine.id,
                    routine.task_id,
                )
                continue
            out.append(RoutineWithTask(routine=routine, task=task))
            if limit is not None and len(out) >= limit:
                break
        return out
