"""
Tests for database.py - users, sessions, task and subtask CRUD, owner scoping.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from database import (
    create_user_db,
    find_user_by_email_db,
    create_session_db,
    get_session_user_db,
    delete_session_db,
    create_task_db,
    get_task_db,
    get_tasks_db,
    update_task_db,
    delete_task_db,
    create_subtask_db,
    get_subtasks_db,
    update_subtask_db,
    delete_subtask_db,
)


class TestUsersAndSessions:
    """Tests for user records and session tokens."""

    def test_create_and_find_user(self, test_db):
        create_user_db("user-1", "alice@example.com", "hash", "salt")

        user = find_user_by_email_db("alice@example.com")
        assert user["id"] == "user-1"
        assert user["password_hash"] == "hash"

    def test_duplicate_email_rejected(self, test_db):
        assert create_user_db("user-1", "alice@example.com", "hash", "salt") is not None
        assert create_user_db("user-2", "alice@example.com", "hash", "salt") is None

    def test_find_unknown_user(self, test_db):
        assert find_user_by_email_db("nobody@example.com") is None

    def test_session_resolves_to_user(self, test_db):
        create_user_db("user-1", "alice@example.com", "hash", "salt")
        create_session_db("token-1", "user-1", ttl_hours=1)

        assert get_session_user_db("token-1") == {"user_id": "user-1", "email": "alice@example.com"}

    def test_expired_session_ignored(self, test_db):
        create_user_db("user-1", "alice@example.com", "hash", "salt")
        create_session_db("token-1", "user-1", ttl_hours=-1)

        assert get_session_user_db("token-1") is None

    def test_delete_session(self, test_db):
        create_user_db("user-1", "alice@example.com", "hash", "salt")
        create_session_db("token-1", "user-1", ttl_hours=1)

        assert delete_session_db("token-1") is True
        assert get_session_user_db("token-1") is None
        assert delete_session_db("token-1") is False


class TestTaskCRUD:
    """Tests for basic task create/read/update/delete operations."""

    def test_create_task_defaults(self, test_db):
        """Create a task with default priority and status."""
        task = create_task_db("id-1", "user-1", "Buy groceries")

        assert task.id == "id-1"
        assert task.user_id == "user-1"
        assert task.title == "Buy groceries"
        assert task.priority == "medium"
        assert task.status == "pending"

    def test_create_task_with_fields(self, test_db):
        task = create_task_db("id-1", "user-1", "File taxes", "high", "in-progress")

        assert task.priority == "high"
        assert task.status == "in-progress"

    def test_get_tasks_empty(self, test_db):
        assert get_tasks_db("user-1") == []

    def test_get_tasks_newest_first(self, test_db):
        create_task_db("id-1", "user-1", "First")
        create_task_db("id-2", "user-1", "Second")
        create_task_db("id-3", "user-1", "Third")

        titles = [task.title for task in get_tasks_db("user-1")]
        assert titles == ["Third", "Second", "First"]

    def test_get_tasks_scoped_to_owner(self, test_db):
        create_task_db("id-1", "user-1", "Mine")
        create_task_db("id-2", "user-2", "Theirs")

        tasks = get_tasks_db("user-1")
        assert [task.id for task in tasks] == ["id-1"]
        assert get_task_db("id-2", "user-1") is None

    def test_update_priority_and_status(self, test_db):
        create_task_db("id-1", "user-1", "Do something")
        updated = update_task_db("id-1", "user-1", priority="high", status="done")

        assert updated.priority == "high"
        assert updated.status == "done"
        assert get_task_db("id-1", "user-1").status == "done"

    def test_update_ignores_title_and_none(self, test_db):
        """Title is not a mutable field; None means 'leave unchanged'."""
        create_task_db("id-1", "user-1", "Original", "low")
        updated = update_task_db("id-1", "user-1", title="Renamed", priority=None, status="done")

        assert updated.title == "Original"
        assert updated.priority == "low"
        assert updated.status == "done"

    def test_update_task_not_found(self, test_db):
        assert update_task_db("nonexistent", "user-1", status="done") is None

    def test_update_other_owners_task(self, test_db):
        create_task_db("id-1", "user-1", "Mine")

        assert update_task_db("id-1", "user-2", status="done") is None
        assert get_task_db("id-1", "user-1").status == "pending"

    def test_delete_task(self, test_db):
        create_task_db("id-1", "user-1", "Delete me")
        assert delete_task_db("id-1", "user-1") is True
        assert get_tasks_db("user-1") == []

    def test_delete_task_not_found(self, test_db):
        assert delete_task_db("nonexistent", "user-1") is False

    def test_delete_other_owners_task(self, test_db):
        create_task_db("id-1", "user-1", "Mine")

        assert delete_task_db("id-1", "user-2") is False
        assert get_task_db("id-1", "user-1") is not None


class TestSubtaskCRUD:
    """Tests for subtasks and their link to the parent task."""

    def test_create_subtask_copies_owner(self, test_db):
        create_task_db("task-1", "user-1", "Plan trip")
        subtask = create_subtask_db("sub-1", "task-1", "user-1", "Book flights")

        assert subtask.task_id == "task-1"
        assert subtask.user_id == "user-1"
        assert subtask.status == "pending"

    def test_create_subtask_missing_parent(self, test_db):
        assert create_subtask_db("sub-1", "nonexistent", "user-1", "Orphan") is None

    def test_create_subtask_on_other_owners_task(self, test_db):
        create_task_db("task-1", "user-1", "Plan trip")

        assert create_subtask_db("sub-1", "task-1", "user-2", "Sneaky") is None
        assert get_subtasks_db("user-1") == []

    def test_get_subtasks_filtered_by_task(self, test_db):
        create_task_db("task-1", "user-1", "Plan trip")
        create_task_db("task-2", "user-1", "Move house")
        create_subtask_db("sub-1", "task-1", "user-1", "Book flights")
        create_subtask_db("sub-2", "task-2", "user-1", "Pack boxes")
        create_subtask_db("sub-3", "task-1", "user-1", "Book hotel")

        assert [s.id for s in get_subtasks_db("user-1", "task-1")] == ["sub-3", "sub-1"]
        assert len(get_subtasks_db("user-1")) == 3

    def test_update_subtask_status(self, test_db):
        create_task_db("task-1", "user-1", "Plan trip")
        create_subtask_db("sub-1", "task-1", "user-1", "Book flights")

        updated = update_subtask_db("sub-1", "user-1", status="in-progress")
        assert updated.status == "in-progress"

    def test_update_subtask_other_owner(self, test_db):
        create_task_db("task-1", "user-1", "Plan trip")
        create_subtask_db("sub-1", "task-1", "user-1", "Book flights")

        assert update_subtask_db("sub-1", "user-2", status="done") is None

    def test_delete_subtask(self, test_db):
        create_task_db("task-1", "user-1", "Plan trip")
        create_subtask_db("sub-1", "task-1", "user-1", "Book flights")

        assert delete_subtask_db("sub-1", "user-1") is True
        assert delete_subtask_db("sub-1", "user-1") is False

    def test_deleting_task_keeps_subtasks(self, test_db):
        """Task deletion does not cascade to subtasks."""
        create_task_db("task-1", "user-1", "Plan trip")
        create_subtask_db("sub-1", "task-1", "user-1", "Book flights")

        assert delete_task_db("task-1", "user-1") is True

        remaining = get_subtasks_db("user-1", "task-1")
        assert [s.id for s in remaining] == ["sub-1"]


class TestDatabasePath:

    def test_connections_use_patched_path(self, test_db):
        assert database.DATABASE_PATH == test_db
