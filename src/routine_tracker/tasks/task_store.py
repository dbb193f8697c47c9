# src/routine_tracker/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    Only what routines need from a task collaborator: stable integer ids,
    a title to show, and the is_routine flag.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

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

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    is_routine INTEGER NOT NULL DEFAULT 0,
                    action_date TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("is_routine", "INTEGER NOT NULL DEFAULT 0")
            add_col("action_date", "TEXT")
            add_col("tags", "TEXT NOT NULL DEFAULT '[]'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_action_date ON tasks(action_date)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _tags_to_str(tags: list[str] | None) -> str:
        if not tags:
            return "[]"
        clean = [t.strip() for t in tags if t and t.strip()]
        return json.dumps(clean, ensure_ascii=False)

    @staticmethod
    def _str_to_tags(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val = json.loads(s)
        except ValueError:
            return []
        return [str(t) for t in val] if isinstance(val, list) else []

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            status=TaskStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            is_routine=bool(row["is_routine"]),
            action_date=row["action_date"],
            tags=self._str_to_tags(row["tags"]),
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        title: str,
        status: TaskStatus = TaskStatus.ACTIVE,
        is_routine: bool = False,
        action_date: str | None = None,
        tags: list[str] | None = None,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    title, status, is_routine, action_date, tags, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    title.strip(),
                    TaskStatus(status).value,
                    int(bool(is_routine)),
                    action_date,
                    self._tags_to_str(tags),
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug("Task added id=%s is_routine=%s", task_id, is_routine)
            return task_id
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks(self, *, limit: int = 50, status: TaskStatus | None = None) -> list[Task]:
        """Newest first, optionally restricted to one status."""
        conn = self._get_conn()
        try:
            if status is None:
                rows = conn.execute(
                    "SELECT * FROM tasks ORDER BY created_at DESC, id DESC LIMIT ?",
                    (int(limit),),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT *
                    FROM tasks
                    WHERE status = ?
                    ORDER BY created_at DESC, id DESC
                        LIMIT ?
                    """,
                    (TaskStatus(status).value, int(limit)),
                ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def update_task_fields(
        self,
        task_id: int,
        *,
        title: str | None = None,
        status: TaskStatus | None = None,
        is_routine: bool | None = None,
        action_date: str | None = None,
        tags: list[str] | None = None,
    ) -> bool:
        """Patch the given fields. Returns False if the task does not exist."""
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            if not title.strip():
                raise ValueError("title is required")
            fields.append("title = ?")
            params.append(title.strip())

        if status is not None:
            fields.append("status = ?")
            params.append(TaskStatus(status).value)

        if is_routine is not None:
            fields.append("is_routine = ?")
            params.append(int(bool(is_routine)))

        if action_date is not None:
            fields.append("action_date = ?")
            params.append(action_date)

        if tags is not None:
            fields.append("tags = ?")
            params.append(self._tags_to_str(tags))

        if not fields:
            return self.get_task(task_id) is not None

        fields.append("updated_at = ?")
        params.append(time.time())
        params.append(int(task_id))

        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, task_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            deleted = cur.rowcount == 1
        finally:
            conn.close()
        if deleted:
            logger.debug("Task deleted id=%s", task_id)
        return deleted
