"""Task records and the ordered task collection.

A Task is immutable once created. A TaskCollection is an ordered, append-only
sequence of tasks; every transformation returns a new collection and leaves
the original untouched.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from typing import TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

TABLE_HEADERS: tuple[str, str, str] = ("Created", "Task", "Status")


class TaskStatus(IntEnum):
    """Lifecycle status of a task.

    The integer values are the codes written to storage.
    CANCELED is defined for completeness; no command produces it.
    """

    PENDING = 0
    DONE = 1
    CANCELED = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.label


def format_created(created: datetime) -> str:
    """Format a timestamp in the short stamp form, e.g. "Mar  7 09:15:02"."""
    return f"{created:%b} {created.day:>2} {created:%H:%M:%S}"


@dataclass(frozen=True)
class Task:
    """A single tracked task.

    Attributes:
        text: The task description. Also its identity for close().
        created: Timezone-aware creation timestamp.
        status: Current lifecycle status.
    """

    text: str
    created: datetime
    status: TaskStatus = TaskStatus.PENDING

    def done(self) -> Task:
        """Return a copy marked Done, keeping text and creation time."""
        return replace(self, status=TaskStatus.DONE)

    def __str__(self) -> str:
        return f"{format_created(self.created)} | {self.text} | {self.status}"


@dataclass(frozen=True)
class TaskCollection:
    """Ordered sequence of tasks in insertion order.

    Duplicate texts are allowed and indistinguishable from each other.

    Example:
        tasks = TaskCollection().appended(Task("buy milk", now))
        tasks.filter(TaskStatus.PENDING).render(sys.stdout)
    """

    tasks: tuple[Task, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of tasks, store a tuple.
        object.__setattr__(self, "tasks", tuple(self.tasks))

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    def __getitem__(self, index: int) -> Task:
        return self.tasks[index]

    def filter(self, status: TaskStatus) -> TaskCollection:
        """Return the tasks with the given status, in their original order."""
        return TaskCollection(t for t in self.tasks if t.status == status)

    def appended(self, task: Task) -> TaskCollection:
        """Return a new collection with task added at the end."""
        return TaskCollection(self.tasks + (task,))

    def closed(self, text: str) -> tuple[TaskCollection, int]:
        """Mark every task whose text equals text as Done.

        Args:
            text: Exact task text to match. All matches are updated.

        Returns:
            The new collection and the number of tasks that matched.
        """
        matched = 0
        updated: list[Task] = []
        for task in self.tasks:
            if task.text == text:
                updated.append(task.done())
                matched += 1
            else:
                updated.append(task)
        return TaskCollection(updated), matched

    def render(self, destination: TextIO) -> None:
        """Write the collection as a table to destination.

        Columns are Created, Task and Status; rows follow collection order.
        Task text is printed literally, never parsed as console markup.
        """
        table = Table(*TABLE_HEADERS)
        for task in self.tasks:
            table.add_row(
                format_created(task.created),
                Text(task.text, overflow="fold"),
                task.status.label,
            )
        console = Console(file=destination, highlight=False, soft_wrap=False)
        console.print(table)
