"""Shared fixtures and utilities for task store tests.

This module provides common test fixtures used across the store tests,
including sample tasks, temporary directories, and parameterized backend
instances.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from taskstore.json_backend import JSONStorageBackend
from taskstore.models import Task, TaskCollection, TaskStatus
from taskstore.protocol import KeyValueStore
from taskstore.repository import TaskRepository
from taskstore.sqlite_backend import SQLiteStorageBackend

BASE_TIME = datetime(2025, 3, 7, 9, 15, 2, 123456, tzinfo=timezone.utc)


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Create a temporary home directory for testing.

    Returns:
        Path to a clean temporary directory.
    """
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def sample_task() -> Task:
    """Create a single pending task.

    Returns:
        A Task created at BASE_TIME.
    """
    return Task(text="Sample task", created=BASE_TIME)


@pytest.fixture
def sample_tasks() -> TaskCollection:
    """Create a collection with every status and a duplicate text.

    Returns:
        A TaskCollection in insertion order.
    """
    plus_two = timezone(timedelta(hours=2))
    return TaskCollection(
        [
            Task("buy milk", BASE_TIME, TaskStatus.PENDING),
            Task("write report", BASE_TIME + timedelta(minutes=5), TaskStatus.DONE),
            Task("buy milk", BASE_TIME + timedelta(hours=1), TaskStatus.DONE),
            Task("call bob", datetime(2025, 3, 8, 8, 0, tzinfo=plus_two), TaskStatus.CANCELED),
            Task("other", BASE_TIME + timedelta(days=1), TaskStatus.PENDING),
        ]
    )


@pytest.fixture(params=["json", "sqlite"])
def kv_store(request, tmp_home: Path) -> Iterator[KeyValueStore]:
    """Parameterized fixture providing both backend types.

    This fixture enables cross-backend compliance testing by running
    the same tests against both JSON and SQLite implementations.

    Yields:
        An open JSONStorageBackend or SQLiteStorageBackend, closed afterwards.
    """
    if request.param == "json":
        store: KeyValueStore = JSONStorageBackend(tmp_home / ".todos.json")
    else:
        store = SQLiteStorageBackend(tmp_home / ".todos")
    with store:
        yield store


@pytest.fixture
def repository(kv_store: KeyValueStore) -> TaskRepository:
    """Create a TaskRepository over each backend type."""
    return TaskRepository(kv_store)


@pytest.fixture
def json_backend(tmp_home: Path) -> Iterator[JSONStorageBackend]:
    """Create a JSON backend for JSON-specific tests."""
    with JSONStorageBackend(tmp_home / ".todos.json") as store:
        yield store


@pytest.fixture
def sqlite_backend(tmp_home: Path) -> Iterator[SQLiteStorageBackend]:
    """Create a SQLite backend for SQLite-specific tests."""
    with SQLiteStorageBackend(tmp_home / ".todos") as store:
        yield store
