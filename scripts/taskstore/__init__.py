"""Task store: models, key-value backends and the persistence adapter.

This module provides a factory that opens the key-value store backend
selected by the TODO_STORAGE_BACKEND environment variable.

Supported backends:
    - "sqlite" (default): SQLite database, one table per bucket
    - "json": JSON file with atomic replace-on-write

Environment Variables:
    TODO_STORAGE_BACKEND: "sqlite" (default) or "json"

Example:
    from pathlib import Path
    from taskstore import TaskRepository, open_storage_backend

    with open_storage_backend("sqlite", Path.home(), "todos") as backend:
        repo = TaskRepository(backend)
        tasks = repo.load()
"""

from __future__ import annotations

import os
from pathlib import Path

from taskstore.errors import (
    SerializationError,
    StorageError,
    TodoError,
    UsageError,
    operation,
)
from taskstore.json_backend import JSONStorageBackend
from taskstore.models import Task, TaskCollection, TaskStatus
from taskstore.protocol import KeyValueStore
from taskstore.repository import TaskRepository
from taskstore.sqlite_backend import SQLiteStorageBackend

__all__ = [
    "KeyValueStore",
    "JSONStorageBackend",
    "SQLiteStorageBackend",
    "SerializationError",
    "StorageError",
    "Task",
    "TaskCollection",
    "TaskRepository",
    "TaskStatus",
    "TodoError",
    "UsageError",
    "DEFAULT_BACKEND",
    "backend_from_env",
    "open_storage_backend",
    "resolve_store_path",
    "operation",
    "_resolve_safe_path",
]

DEFAULT_BACKEND: str = "sqlite"


def _resolve_safe_path(base_dir: Path, user_path: str) -> Path | None:
    """Resolve a path, ensuring it stays within base_dir.

    Args:
        base_dir: The base directory paths must stay within.
        user_path: User-provided path relative to base_dir.

    Returns:
        Resolved absolute path, or None if path escapes base_dir.
    """
    if not user_path or not user_path.strip():
        return None

    if "\x00" in user_path:
        return None

    candidate = Path(user_path)
    if candidate.is_absolute():
        return None

    # Resolve to absolute, following symlinks
    resolved = (base_dir / candidate).resolve()
    base_resolved = base_dir.resolve()

    try:
        resolved.relative_to(base_resolved)
        return resolved
    except ValueError:
        return None  # Path escapes base directory


def resolve_store_path(backend: str, home: Path, db_name: str) -> Path:
    """Map a store name to its hidden file under home.

    The SQLite store lives at ``~/.<name>``; the JSON store at
    ``~/.<name>.json``.

    Raises:
        UsageError: If the name is empty or resolves outside home.
    """
    file_name = f".{db_name}"
    if backend == "json":
        file_name += ".json"

    safe_path = _resolve_safe_path(home, file_name) if db_name.strip() else None
    if safe_path is None:
        raise UsageError(f"invalid store name {db_name!r}")
    return safe_path


def backend_from_env() -> str:
    """Read the backend name from TODO_STORAGE_BACKEND."""
    return os.environ.get("TODO_STORAGE_BACKEND", DEFAULT_BACKEND).strip().lower()


def open_storage_backend(backend: str, home: Path, db_name: str) -> KeyValueStore:
    """Open the named key-value store backend for the given store name.

    Args:
        backend: "sqlite" or "json".
        home: Directory the store file lives in.
        db_name: Store name, as given to the -d flag.

    Returns:
        An open KeyValueStore; close it, or use it in a ``with`` block.

    Raises:
        UsageError: If the backend or store name is invalid.
        StorageError: If the store cannot be opened.
    """
    path = resolve_store_path(backend, home, db_name)

    if backend == "sqlite":
        return SQLiteStorageBackend(path)
    elif backend == "json":
        return JSONStorageBackend(path)
    else:
        raise UsageError(
            f"Unknown storage backend: {backend!r}. "
            f"Expected 'sqlite' or 'json'."
        )
