"""Error types raised by the task store and the command-line front end.

Every error the tracker raises on purpose derives from TodoError, so the CLI
can report it and exit without a traceback. Errors are wrapped with the name
of the operation that produced them using the operation() context manager.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class TodoError(Exception):
    """Base class for all tracker errors.

    Attributes:
        message: Human-readable description of the failure.
        operation: Name of the operation that failed, if known.
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class StorageError(TodoError):
    """The key-value store could not be opened, read or written."""


class SerializationError(StorageError):
    """Stored bytes could not be decoded, or tasks could not be encoded."""


class UsageError(TodoError):
    """The command line asked for something the tracker cannot do."""


@contextmanager
def operation(name: str) -> Iterator[None]:
    """Prefix any TodoError raised inside the block with an operation name.

    The re-raised error keeps its type and chains the original, so callers
    can still catch StorageError or UsageError specifically.

    Example:
        with operation("create_task"):
            repo.store(tasks)
    """
    try:
        yield
    except TodoError as e:
        raise type(e)(str(e), operation=name) from e
