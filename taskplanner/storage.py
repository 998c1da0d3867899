"""SQLite storage for scheduler tasks."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Union

from .models import Task

log = logging.getLogger(__name__)

DEFAULT_DB_NAME = "scheduler.db"
DEFAULT_TASK_LIMIT = 50

_SCHEMA = """
CREATE TABLE IF NOT EXISTS scheduler (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    title TEXT NOT NULL,
    comment TEXT,
    repeat TEXT CHECK(length(repeat) <= 128)
);
CREATE INDEX IF NOT EXISTS idx_date ON scheduler(date);
"""

_COLUMNS = "id, date, title, comment, repeat"


class TaskNotFoundError(LookupError):
    """Raised when no task has the requested id."""


def database_path() -> Path:
    """Return the database file: $TODO_DBFILE or scheduler.db in the working directory."""
    env_path = os.environ.get("TODO_DBFILE", "")
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_DB_NAME


def setup_database(path: Union[str, os.PathLike]) -> None:
    """Create the database file with its table when the file does not exist yet."""
    db_file = Path(path)
    if db_file.exists():
        return
    log.info("Database file not found, creating an empty database file.")
    db_file.touch()
    with sqlite3.connect(db_file) as conn:
        log.info("Creating table 'scheduler'...")
        conn.executescript(_SCHEMA)
    conn.close()
    log.info("Table 'scheduler' created successfully.")


def _row_to_task(row: tuple) -> Task:
    task_id, day, title, comment, repeat = row
    return Task(
        id=str(task_id),
        date=day,
        title=title,
        comment=comment or "",
        repeat=repeat or "",
    )


class TaskStore:
    """A connection to the scheduler database."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.Lock()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _execute(self, query: str, params: tuple) -> sqlite3.Cursor:
        with self._lock, self._conn:
            return self._conn.execute(query, params)

    def add_task(self, date: str, title: str, comment: str, repeat: str) -> int:
        """Insert a task and return its new id."""
        cursor = self._execute(
            "INSERT INTO scheduler (date, title, comment, repeat) VALUES (?, ?, ?, ?)",
            (date, title, comment, repeat),
        )
        return cursor.lastrowid

    def get_task(self, task_id: int) -> Task:
        """Return the task with the given id or raise TaskNotFoundError."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM scheduler WHERE id = ?", (task_id,)
            ).fetchone()
        if row is None:
            raise TaskNotFoundError("task not found")
        return _row_to_task(row)

    def update_task(self, task: Task) -> int:
        """Overwrite a task's fields and return the number of rows changed."""
        cursor = self._execute(
            "UPDATE scheduler SET date = ?, title = ?, comment = ?, repeat = ? WHERE id = ?",
            (task.date, task.title, task.comment, task.repeat, task.id),
        )
        return cursor.rowcount

    def delete_task(self, task_id: int) -> int:
        """Delete a task and return the number of rows removed."""
        cursor = self._execute("DELETE FROM scheduler WHERE id = ?", (task_id,))
        return cursor.rowcount

    def list_tasks(self, limit: int = DEFAULT_TASK_LIMIT) -> list[Task]:
        """Return up to ``limit`` tasks ordered by date."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM scheduler ORDER BY date LIMIT ?", (limit,)
            ).fetchall()
        return [_row_to_task(row) for row in rows]