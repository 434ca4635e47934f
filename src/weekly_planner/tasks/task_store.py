# src/weekly_planner/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from .task_models import Subtask, Task, Weekday

logger = logging.getLogger(__name__)

_DAY_ORDER_SQL = (
    "CASE day "
    "WHEN 'monday' THEN 0 WHEN 'tuesday' THEN 1 WHEN 'wednesday' THEN 2 "
    "WHEN 'thursday' THEN 3 WHEN 'friday' THEN 4 WHEN 'saturday' THEN 5 "
    "WHEN 'sunday' THEN 6 ELSE 7 END"
)


def _new_task_id() -> str:
    # Short enough to type in console commands.
    return uuid.uuid4().hex[:8]


class TaskStore:
    """
    SQLite planner task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection

    The reminder scheduler only ever calls list_all(); every write goes
    through tasks.task_api so the reminder registry hears about it.
    """

    def __init__(self, db_path: str | Path = "planner.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

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
                    id TEXT PRIMARY KEY,
                    label TEXT NOT NULL,
                    detail TEXT NOT NULL DEFAULT '',
                    time TEXT NOT NULL DEFAULT '',
                    day TEXT NOT NULL DEFAULT 'monday',
                    ord INTEGER NOT NULL DEFAULT 0,
                    done INTEGER NOT NULL DEFAULT 0,
                    pinned INTEGER NOT NULL DEFAULT 0,
                    schedule TEXT,
                    created_at REAL NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subtasks (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    label TEXT NOT NULL,
                    done INTEGER NOT NULL DEFAULT 0,
                    ord INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                if name in {row["name"] for row in cur.fetchall()}:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s.%s", table, name)

            add_col("tasks", "detail", "TEXT NOT NULL DEFAULT ''")
            add_col("tasks", "time", "TEXT NOT NULL DEFAULT ''")
            add_col("tasks", "day", "TEXT NOT NULL DEFAULT 'monday'")
            add_col("tasks", "ord", "INTEGER NOT NULL DEFAULT 0")
            add_col("tasks", "done", "INTEGER NOT NULL DEFAULT 0")
            add_col("tasks", "pinned", "INTEGER NOT NULL DEFAULT 0")
            add_col("tasks", "schedule", "TEXT")
            add_col("tasks", "created_at", "REAL NOT NULL DEFAULT 0")
            add_col("tasks", "updated_at", "REAL NOT NULL DEFAULT 0")

            add_col("subtasks", "done", "INTEGER NOT NULL DEFAULT 0")
            add_col("subtasks", "ord", "INTEGER NOT NULL DEFAULT 0")
            add_col("subtasks", "created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_day_ord ON tasks(day, ord)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_subtasks_task ON subtasks(task_id, ord)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        schedule = row["schedule"]
        if schedule is not None and not str(schedule).strip():
            schedule = None
        return Task(
            id=str(row["id"]),
            label=str(row["label"] or ""),
            detail=str(row["detail"] or ""),
            day=Weekday.from_db(row["day"]),
            time=str(row["time"] or ""),
            ord=int(row["ord"] or 0),
            done=bool(row["done"]),
            pinned=bool(row["pinned"]),
            schedule=schedule,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
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
        label: str,
        detail: str = "",
        day: Weekday | None = None,
        time_text: str = "",
        schedule: str | None = None,
        ord: int | None = None,
        pinned: bool = False,
    ) -> Task:
        if not label or not label.strip():
            raise ValueError("label is required")

        day = day or Weekday.MONDAY
        schedule = (schedule or "").strip() or None
        now = time.time()
        task_id = _new_task_id()

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if ord is None:
                cur.execute("SELECT COALESCE(MAX(ord), -1) + 1 FROM tasks WHERE day = ?", (day.value,))
                (ord,) = cur.fetchone()

            cur.execute(
                """
                INSERT INTO tasks(
                    id, label, detail, time, day, ord,
                    done, pinned, schedule, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    label.strip(),
                    (detail or "").strip(),
                    (time_text or "").strip(),
                    day.value,
                    int(ord),
                    1 if pinned else 0,
                    schedule,
                    now,
                    now,
                ),
            )
            conn.commit()
            logger.debug("Task added id=%s day=%s schedule=%r", task_id, day.value, schedule)
        finally:
            conn.close()

        task = self.get_task(task_id)
        if task is None:
            raise RuntimeError(f"SQLite lost freshly inserted task {task_id}")
        return task

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_all(self) -> list[Task]:
        """Every task, in planner order (day, then ord). Used by reconciliation."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT * FROM tasks ORDER BY {_DAY_ORDER_SQL}, ord ASC, created_at ASC")
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_for_day(self, day: Weekday) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM tasks WHERE day = ? ORDER BY pinned DESC, ord ASC, created_at ASC",
                (day.value,),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def update_task(
        self,
        task_id: str,
        *,
        label: str | None = None,
        detail: str | None = None,
        day: Weekday | None = None,
        time_text: str | None = None,
        schedule: str | None = None,
        clear_schedule: bool = False,
        ord: int | None = None,
        pinned: bool | None = None,
    ) -> Task | None:
        """
        Partial update: None means "leave as is".

        Use clear_schedule=True to drop the reminder (schedule=None alone keeps it).
        Returns the updated task, or None if it does not exist.
        """
        fields: list[str] = []
        params: list[Any] = []

        if label is not None:
            if not label.strip():
                raise ValueError("label must not be empty")
            fields.append("label = ?")
            params.append(label.strip())

        if detail is not None:
            fields.append("detail = ?")
            params.append(detail.strip())

        if day is not None:
            fields.append("day = ?")
            params.append(day.value)

        if time_text is not None:
            fields.append("time = ?")
            params.append(time_text.strip())

        if clear_schedule:
            fields.append("schedule = NULL")
        elif schedule is not None:
            fields.append("schedule = ?")
            params.append(schedule.strip() or None)

        if ord is not None:
            fields.append("ord = ?")
            params.append(int(ord))

        if pinned is not None:
            fields.append("pinned = ?")
            params.append(1 if pinned else 0)

        if fields:
            fields.append("updated_at = ?")
            params.append(time.time())
            params.append(str(task_id))

            sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"

            conn = self._get_conn()
            try:
                conn.execute(sql, params)
                conn.commit()
            finally:
                conn.close()

        return self.get_task(task_id)

    def set_done(self, task_id: str, done: bool) -> Task | None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE tasks SET done = ?, updated_at = ? WHERE id = ?",
                (1 if done else 0, time.time(), str(task_id)),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        """Delete a task together with its subtasks."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            deleted = cur.rowcount == 1
            cur.execute("DELETE FROM subtasks WHERE task_id = ?", (str(task_id),))
            orphans = cur.rowcount
            conn.commit()
        finally:
            conn.close()
        if deleted:
            logger.debug("Task deleted id=%s subtasks=%d", task_id, orphans)
        return deleted

    # ---- subtasks ----

    @staticmethod
    def _row_to_subtask(row: sqlite3.Row) -> Subtask:
        return Subtask(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            label=str(row["label"] or ""),
            done=bool(row["done"]),
            ord=int(row["ord"] or 0),
            created_at=float(row["created_at"] or 0.0),
        )

    def add_subtask(self, task_id: str, *, label: str, ord: int | None = None) -> Subtask | None:
        """Append a subtask. Returns None if the parent task does not exist."""
        if not label or not label.strip():
            raise ValueError("label is required")

        subtask_id = _new_task_id()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1 FROM tasks WHERE id = ?", (str(task_id),))
            if cur.fetchone() is None:
                return None
            if ord is None:
                cur.execute(
                    "SELECT COALESCE(MAX(ord), -1) + 1 FROM subtasks WHERE task_id = ?",
                    (str(task_id),),
                )
                (ord,) = cur.fetchone()

            cur.execute(
                "INSERT INTO subtasks(id, task_id, label, done, ord, created_at) VALUES (?, ?, ?, 0, ?, ?)",
                (subtask_id, str(task_id), label.strip(), int(ord), time.time()),
            )
            conn.commit()
            logger.debug("Subtask added id=%s task_id=%s", subtask_id, task_id)
        finally:
            conn.close()

        return self.get_subtask(subtask_id)

    def get_subtask(self, subtask_id: str) -> Subtask | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM subtasks WHERE id = ?", (str(subtask_id),))
            row = cur.fetchone()
            return self._row_to_subtask(row) if row else None
        finally:
            conn.close()

    def list_subtasks(self, task_id: str) -> list[Subtask]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM subtasks WHERE task_id = ? ORDER BY ord ASC, created_at ASC",
                (str(task_id),),
            )
            return [self._row_to_subtask(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def update_subtask(
        self,
        subtask_id: str,
        *,
        label: str | None = None,
        done: bool | None = None,
        ord: int | None = None,
    ) -> Subtask | None:
        """Partial update, same rules as update_task(). None if missing."""
        fields: list[str] = []
        params: list[Any] = []

        if label is not None:
            if not label.strip():
                raise ValueError("label must not be empty")
            fields.append("label = ?")
            params.append(label.strip())
        if done is not None:
            fields.append("done = ?")
            params.append(1 if done else 0)
        if ord is not None:
            fields.append("ord = ?")
            params.append(int(ord))

        if fields:
            params.append(str(subtask_id))
            conn = self._get_conn()
            try:
                conn.execute(f"UPDATE subtasks SET {', '.join(fields)} WHERE id = ?", params)
                conn.commit()
            finally:
                conn.close()

        return self.get_subtask(subtask_id)

    def delete_subtask(self, subtask_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM subtasks WHERE id = ?", (str(subtask_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
