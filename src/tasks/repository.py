from __future__ import annotations

import json
import logging
import os
import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import NotFoundError, ValidationError
from .models import Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


def default_db_path() -> Path:
    """``OOLLERT_DB_PATH`` if set, else ``data/oollert.db`` at the project root."""
    env_path = os.getenv("OOLLERT_DB_PATH")
    if env_path:
        return Path(env_path)
    root = Path(__file__).resolve().parents[2]
    return root / "data" / "oollert.db"


def dump_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Store aware timestamps as UTC so ISO strings sort chronologically."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


def load_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class TaskRepository:
    """SQLite-backed task storage. Every read and write is scoped by owner."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else default_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    status TEXT NOT NULL CHECK (status IN ('todo','inprogress','done')),
                    priority TEXT NOT NULL DEFAULT 'medium'
                        CHECK (priority IN ('low','medium','high','urgent')),
                    due_date TEXT,
                    labels_json TEXT DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_due ON tasks(owner_id, due_date)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner_priority ON tasks(owner_id, priority)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_status ON tasks(owner_id, status)")
            conn.commit()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            owner=row["owner_id"],
            created_at=load_timestamp(row["created_at"]),
            updated_at=load_timestamp(row["updated_at"]),
            description=row["description"] or "",
            status=TaskStatus(row["status"]),
            priority=TaskPriority(row["priority"]),
            due_date=load_timestamp(row["due_date"]),
            labels=json.loads(row["labels_json"] or "[]"),
            completed_at=load_timestamp(row["completed_at"]),
        )

    def find_by_owner(self, owner_id: int, *, include_done: bool = True) -> list[Task]:
        """All tasks for ``owner_id``: most urgent first, then soonest due, then newest."""
        where = "owner_id = ?" if include_done else "owner_id = ? AND status != 'done'"
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM tasks
                WHERE {where}
                ORDER BY
                    CASE priority
                        WHEN 'urgent' THEN 0
                        WHEN 'high' THEN 1
                        WHEN 'medium' THEN 2
                        ELSE 3
                    END,
                    due_date IS NULL,
                    due_date,
                    created_at DESC,
                    id DESC
                """,
                (owner_id,),
            ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def find_one(self, task_id: int, owner_id: int) -> Optional[Task]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND owner_id = ?", (task_id, owner_id)
            ).fetchone()
        return self._row_to_task(row) if row else None

    def get_owned(self, task_id: int, owner_id: int) -> Task:
        """Like ``find_one`` but raises ``NotFoundError`` instead of returning None."""
        task = self.find_one(task_id, owner_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def save(self, task: Task) -> Task:
        """Insert a new task or overwrite an existing one (last write wins).

        Raises:
            ValidationError: the task has no title or no owner.
            NotFoundError: updating a task that no longer exists for its owner.
        """
        if not task.title or not task.title.strip():
            raise ValidationError("Title is required", field="title")
        if task.owner is None:
            raise ValidationError("Owner is required", field="owner")

        values = (
            task.title,
            task.description or "",
            task.status.value,
            task.priority.value,
            dump_timestamp(task.due_date),
            json.dumps(task.labels, ensure_ascii=False),
            dump_timestamp(task.updated_at),
            dump_timestamp(task.completed_at),
        )
        with self._connect() as conn:
            if task.id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO tasks (title, description, status, priority, due_date,
                                       labels_json, updated_at, completed_at, owner_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values + (task.owner, dump_timestamp(task.created_at)),
                )
                conn.commit()
                saved = replace(task, id=cursor.lastrowid)
                logger.info("Created task id=%s owner=%s", saved.id, saved.owner)
                return saved

            cursor = conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, status = ?, priority = ?, due_date = ?,
                    labels_json = ?, updated_at = ?, completed_at = ?
                WHERE id = ? AND owner_id = ?
                """,
                values + (task.id, task.owner),
            )
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError(task.id)
        return task

    def delete_by_id(self, task_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted task id=%s", task_id)
        return deleted
