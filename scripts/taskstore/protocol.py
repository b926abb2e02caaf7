"""Protocols and type definitions for key-value store backends.

This module defines the interface every store backend implements, and the
shape of a task record as it is serialized into the store.
"""

from __future__ import annotations

from typing import Protocol, TypedDict


class TaskRecord(TypedDict):
    """Serialized form of a single task.

    Attributes:
        task: The task text.
        created: ISO 8601 timestamp with UTC offset (e.g. "2025-11-14T10:30:45.123456+00:00").
        status: Integer status code (0 pending, 1 done, 2 canceled).
    """

    task: str
    created: str
    status: int


class KeyValueStore(Protocol):
    """Protocol for embedded key-value store backends.

    Values live under a key inside a named bucket. Buckets must be created
    with ensure_bucket() before they can be read or written. A store is
    opened on construction and released by close(), or by leaving a
    ``with`` block.
    """

    def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket if it does not exist yet.

        Calling this on an existing bucket is a no-op.

        Raises:
            StorageError: If the bucket cannot be created.
        """
        ...

    def get(self, bucket: str, key: str) -> bytes | None:
        """Read the value stored under key.

        Returns:
            The stored bytes, or None if the key has no value.

        Raises:
            StorageError: If the bucket is missing or the read fails.
        """
        ...

    def put(self, bucket: str, key: str, value: bytes) -> None:
        """Atomically replace the value stored under key.

        Either the new value is fully written or the previous value is
        left unchanged.

        Raises:
            StorageError: If the bucket is missing or the write fails.
        """
        ...

    def close(self) -> None:
        """Release the underlying file. Safe to call more than once."""
        ...

    def __enter__(self) -> KeyValueStore: ...

    def __exit__(self, *exc_info: object) -> None: ...
