import sqlite3
import logging
from datetime import datetime, timedelta
from typing import Optional
from contextlib import contextmanager

from config import settings
from models import Task, Subtask

logger = logging.getLogger(__name__)

DATABASE_PATH = settings.database_path

TASK_MUTABLE_FIELDS = ("priority", "status")
SUBTASK_MUTABLE_FIELDS = ("status",)

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    logger.info("Running migrations against %s", DATABASE_PATH)
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env={**os.environ, "DATABASE_PATH": os.path.abspath(DATABASE_PATH)},
        check=True
    )

def _row_to_task(row) -> Task:
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        priority=row["priority"],
        status=row["status"],
        created_at=row["created_at"],
    )

def _row_to_subtask(row) -> Subtask:
    return Subtask(
        id=row["id"],
        task_id=row["task_id"],
        user_id=row["user_id"],
        title=row["title"],
        status=row["status"],
        created_at=row["created_at"],
    )

def _apply_updates(conn, table: str, record_id: str, user_id: str, allowed: tuple, updates: dict):
    """
    Write the allowed fields that differ from the stored row.
    Returns the re-fetched row, or None if the record does not exist for this owner.
    """
    row = conn.execute(
        f"SELECT * FROM {table} WHERE id = ? AND user_id = ?",
        (record_id, user_id)
    ).fetchone()
    if not row:
        return None

    changes = {
        field: value
        for field, value in updates.items()
        if field in allowed and value is not None and row[field] != value
    }

    if changes:
        set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
        values = list(changes.values()) + [record_id, user_id]
        conn.execute(f"UPDATE {table} SET {set_clause} WHERE id = ? AND user_id = ?", values)
        conn.commit()

    return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()


# User and session operations
def create_user_db(user_id: str, email: str, password_hash: str, password_salt: str) -> Optional[dict]:
    """Create a user. Returns None if the email is already registered."""
    created_at = datetime.now().isoformat()
    with get_db() as conn:
        try:
            conn.execute(
                "INSERT INTO users (id, email, password_hash, password_salt, created_at) VALUES (?, ?, ?, ?, ?)",
                (user_id, email, password_hash, password_salt, created_at)
            )
        except sqlite3.IntegrityError:
            return None
        conn.commit()
    return {"id": user_id, "email": email, "created_at": created_at}

def find_user_by_email_db(email: str) -> Optional[dict]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return dict(row) if row else None

def create_session_db(token: str, user_id: str, ttl_hours: int) -> dict:
    now = datetime.now()
    expires_at = (now + timedelta(hours=ttl_hours)).isoformat()
    with get_db() as conn:
        conn.execute(
            "INSERT INTO sessions (token, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
            (token, user_id, now.isoformat(), expires_at)
        )
        conn.commit()
    return {"token": token, "user_id": user_id, "expires_at": expires_at}

def get_session_user_db(token: str) -> Optional[dict]:
    """Return {"user_id", "email"} for a live session, or None if missing/expired."""
    now = datetime.now().isoformat()
    with get_db() as conn:
        row = conn.execute(
            """SELECT users.id AS user_id, users.email AS email
               FROM sessions JOIN users ON users.id = sessions.user_id
               WHERE sessions.token = ? AND sessions.expires_at > ?""",
            (token, now)
        ).fetchone()
        return dict(row) if row else None

def delete_session_db(token: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
        conn.commit()
        return cursor.rowcount > 0


# Task operations
def get_tasks_db(user_id: str) -> list[Task]:
    """All tasks owned by user_id, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            (user_id,)
        ).fetchall()
        return [_row_to_task(row) for row in rows]

def get_task_db(task_id: str, user_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id)
        ).fetchone()
        return _row_to_task(row) if row else None

def create_task_db(
    task_id: str,
    user_id: str,
    title: str,
    priority: str = "medium",
    status: str = "pending"
) -> Task:
    created_at = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks (id, user_id, title, priority, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (task_id, user_id, title, priority, status, created_at)
        )
        conn.commit()

    return Task(
        id=task_id,
        user_id=user_id,
        title=title,
        priority=priority,
        status=status,
        created_at=created_at,
    )

def update_task_db(task_id: str, user_id: str, **updates) -> Optional[Task]:
    """
    Update a task's priority and/or status.
    Fields other than priority/status are ignored, so is a None value.

    Returns None if the task does not exist or belongs to someone else.
    """
    with get_db() as conn:
        row = _apply_updates(conn, "tasks", task_id, user_id, TASK_MUTABLE_FIELDS, updates)
        return _row_to_task(row) if row else None

def delete_task_db(task_id: str, user_id: str) -> bool:
    """
    Delete a task. Its subtasks are left in place.
    """
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id)
        )
        conn.commit()
        return cursor.rowcount > 0


# Subtask operations
def get_subtasks_db(user_id: str, task_id: Optional[str] = None) -> list[Subtask]:
    """Subtasks owned by user_id, optionally only those of task_id, newest first."""
    query = "SELECT * FROM subtasks WHERE user_id = ?"
    params: list = [user_id]
    if task_id is not None:
        query += " AND task_id = ?"
        params.append(task_id)
    query += " ORDER BY created_at DESC, rowid DESC"
    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_subtask(row) for row in rows]

def create_subtask_db(
    subtask_id: str,
    task_id: str,
    user_id: str,
    title: str,
    status: str = "pending"
) -> Optional[Subtask]:
    """
    Create a subtask under task_id.
    Returns None unless the parent task exists and is owned by user_id.
    """
    parent = get_task_db(task_id, user_id)
    if parent is None:
        return None

    created_at = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO subtasks (id, task_id, user_id, title, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (subtask_id, task_id, parent.user_id, title, status, created_at)
        )
        conn.commit()

    return Subtask(
        id=subtask_id,
        task_id=task_id,
        user_id=parent.user_id,
        title=title,
        status=status,
        created_at=created_at,
    )

def update_subtask_db(subtask_id: str, user_id: str, **updates) -> Optional[Subtask]:
    with get_db() as conn:
        row = _apply_updates(conn, "subtasks", subtask_id, user_id, SUBTASK_MUTABLE_FIELDS, updates)
        return _row_to_subtask(row) if row else None

def delete_subtask_db(subtask_id: str, user_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM subtasks WHERE id = ? AND user_id = ?",
            (subtask_id, user_id)
        )
        conn.commit()
        return cursor.rowcount > 0
