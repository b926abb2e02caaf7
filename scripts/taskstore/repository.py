"""Load and store the task collection as a single value in a key-value store.

The entire collection is one JSON array kept under a fixed key in a fixed
bucket. Every command reads the whole array and mutating commands write the
whole array back, so each operation costs O(n) in the number of tasks.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from taskstore.errors import SerializationError
from taskstore.models import Task, TaskCollection, TaskStatus
from taskstore.protocol import KeyValueStore, TaskRecord

logger = logging.getLogger(__name__)

DEFAULT_BUCKET: str = "default"
TASKS_KEY: str = "todos"


def task_to_record(task: Task) -> TaskRecord:
    """Convert a Task to its serialized record."""
    if task.created.tzinfo is None:
        raise SerializationError(f"task {task.text!r} has a naive timestamp")
    return {
        "task": task.text,
        "created": task.created.isoformat(),
        "status": int(task.status),
    }


def record_to_task(record: Any) -> Task:
    """Validate a decoded record and build a Task from it.

    Raises:
        SerializationError: If any field is missing or has the wrong type,
            the timestamp is not ISO 8601 with an offset, or the status code
            is not a known status.
    """
    if not isinstance(record, dict):
        raise SerializationError(f"expected a task object, got {type(record).__name__}")

    text = record.get("task")
    created = record.get("created")
    status = record.get("status")

    if not isinstance(text, str):
        raise SerializationError(f"task text must be a string: {record!r}")
    if not isinstance(created, str):
        raise SerializationError(f"created must be a string: {record!r}")
    # bool is an int subclass; reject it explicitly
    if not isinstance(status, int) or isinstance(status, bool):
        raise SerializationError(f"status must be an integer: {record!r}")

    try:
        created_at = datetime.fromisoformat(created)
    except ValueError as e:
        raise SerializationError(f"invalid created timestamp {created!r}") from e
    if created_at.tzinfo is None:
        raise SerializationError(f"created timestamp has no UTC offset: {created!r}")

    try:
        task_status = TaskStatus(status)
    except ValueError as e:
        raise SerializationError(f"unknown status code {status}") from e

    return Task(text=text, created=created_at, status=task_status)


def encode_tasks(tasks: TaskCollection) -> bytes:
    """Serialize a collection to UTF-8 JSON bytes."""
    records = [task_to_record(t) for t in tasks]
    try:
        return json.dumps(records, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError, UnicodeEncodeError) as e:
        raise SerializationError(f"cannot encode tasks: {e}") from e


def decode_tasks(data: bytes) -> TaskCollection:
    """Deserialize JSON bytes produced by encode_tasks()."""
    try:
        records = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationError(f"stored tasks are not valid JSON: {e}") from e
    if not isinstance(records, list):
        raise SerializationError(
            f"stored tasks must be a JSON array, got {type(records).__name__}"
        )
    return TaskCollection(record_to_task(r) for r in records)


class TaskRepository:
    """Persistence adapter between a TaskCollection and a KeyValueStore.

    Ensures its bucket exists on construction, so a fresh store behaves as
    an empty task list.

    Attributes:
        backend: The underlying key-value store.
        bucket: Bucket holding the task list.
        key: Key under which the encoded list is stored.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        bucket: str = DEFAULT_BUCKET,
        key: str = TASKS_KEY,
    ) -> None:
        self.backend = backend
        self.bucket = bucket
        self.key = key
        self.backend.ensure_bucket(self.bucket)

    def load(self) -> TaskCollection:
        """Read the whole collection; an absent value is an empty collection."""
        data = self.backend.get(self.bucket, self.key)
        if data is None:
            logger.debug("No tasks stored under %s/%s", self.bucket, self.key)
            return TaskCollection()
        tasks = decode_tasks(data)
        logger.debug("Loaded %d tasks", len(tasks))
        return tasks

    def store(self, tasks: TaskCollection) -> None:
        """Encode and write the whole collection in one transaction."""
        data = encode_tasks(tasks)
        self.backend.put(self.bucket, self.key, data)
        logger.debug("Stored %d tasks (%d bytes)", len(tasks), len(data))
