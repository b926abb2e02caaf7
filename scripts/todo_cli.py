#!/usr/bin/env python3
"""
todo - command-line task tracker backed by a local key-value store.

Loads the full task list from the store, applies one command, writes the
list back for mutating commands and prints a table for listing commands.

Usage:
    todo [-d NAME] [-c COMMAND] [-t TEXT]

    -d NAME      Store name; the file is ~/.NAME (default: todos)
    -c COMMAND   all | pending | completed | create | close (default: pending)
    -t TEXT      Task text for create and close

Environment Variables:
    TODO_STORAGE_BACKEND (optional): Store engine ("sqlite" or "json").
                                     Default: "sqlite"
    DEBUG (optional): If set, enables debug logging to stderr.

Exit Codes:
    0: Success
    1: Error (unknown command, store failure, corrupted data, etc.)

Stored Format:
    Bucket "default", key "todos": a JSON array of
    {"task": str, "created": ISO 8601 timestamp, "status": int}.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
import traceback
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TextIO

from taskstore import (
    DEFAULT_BACKEND,
    TaskRepository,
    TodoError,
    UsageError,
    backend_from_env,
    open_storage_backend,
    operation,
    resolve_store_path,
)
from taskstore.models import Task, TaskStatus

# Version check
if sys.version_info < (3, 10):
    print("Error: Python 3.10+ required", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger("todo")

COMMANDS: tuple[str, ...] = ("all", "pending", "completed", "create", "close")


@dataclass
class TodoConfig:
    """Settings for a single invocation.

    Attributes:
        db_name: Store name; the store file is a hidden file under home.
        command: Command to run.
        task: Task text for create and close.
        backend: Key-value store engine, "sqlite" or "json".
        home: Directory holding the store file. None means the user's home.
    """

    db_name: str = "todos"
    command: str = "pending"
    task: str = ""
    backend: str = DEFAULT_BACKEND
    home: Path | None = None

    @property
    def db_path(self) -> Path:
        home = self.home if self.home is not None else Path.home()
        return resolve_store_path(self.backend, home, self.db_name)


def unknown_command(command: str) -> UsageError:
    return UsageError(
        f"Unknown command {command!r}. Expected one of: {', '.join(COMMANDS)}"
    )


def now_local() -> datetime:
    """Return the current local time as a timezone-aware datetime."""
    return datetime.now().astimezone()


def show_all_tasks(out: TextIO, repo: TaskRepository) -> None:
    """Render every task."""
    with operation("show_all_tasks"):
        tasks = repo.load()
    tasks.render(out)


def show_tasks(out: TextIO, repo: TaskRepository, status: TaskStatus) -> None:
    """Render only the tasks with the given status."""
    with operation("show_tasks"):
        tasks = repo.load()
    tasks.filter(status).render(out)


def create_task(
    repo: TaskRepository,
    text: str,
    clock: Callable[[], datetime] = now_local,
) -> Task:
    """Append a new pending task and store the full list.

    Empty text is accepted.
    """
    with operation("create_task"):
        tasks = repo.load()
        task = Task(text=text, created=clock(), status=TaskStatus.PENDING)
        repo.store(tasks.appended(task))
    logger.info("Created task %r", text)
    return task


def close_task(repo: TaskRepository, text: str) -> int:
    """Mark every task whose text equals text as Done and store the list.

    The list is written back even when nothing matches.

    Returns:
        Number of tasks that matched.
    """
    with operation("close_task"):
        tasks = repo.load()
        updated, matched = tasks.closed(text)
        repo.store(updated)
    logger.info("Closed %d task(s) matching %r", matched, text)
    return matched


def dispatch(config: TodoConfig, repo: TaskRepository, out: TextIO) -> None:
    """Run the configured command against repo.

    Raises:
        UsageError: If the command name is not recognized.
        StorageError: If the store cannot be read or written.
    """
    logger.debug("Dispatching command %r", config.command)
    command = config.command
    if command == "all":
        show_all_tasks(out, repo)
    elif command == "pending":
        show_tasks(out, repo, TaskStatus.PENDING)
    elif command == "completed":
        show_tasks(out, repo, TaskStatus.DONE)
    elif command == "create":
        create_task(repo, config.task)
    elif command == "close":
        close_task(repo, config.task)
    else:
        raise unknown_command(command)


def run(config: TodoConfig, out: TextIO) -> None:
    """Open the store, ensure its bucket exists, run one command, close it.

    Unknown commands are rejected before the store is opened.
    """
    if config.command not in COMMANDS:
        raise unknown_command(config.command)

    home = config.home if config.home is not None else Path.home()
    with operation("open_store"):
        logger.debug("Using %s store at %s", config.backend, config.db_path)
        backend = open_storage_backend(config.backend, home, config.db_name)
    with backend:
        with operation("open_store"):
            repo = TaskRepository(backend)
        dispatch(config, repo, out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todo", description="Track tasks in a local key-value store."
    )
    parser.add_argument("-d", dest="db_name", default="todos", help="DB name")
    parser.add_argument(
        "-c",
        dest="command",
        default="pending",
        help=f"Execute command ({', '.join(COMMANDS)})",
    )
    parser.add_argument("-t", dest="task", default="", help="Task name")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> TodoConfig:
    """Build a TodoConfig from command-line flags and the environment."""
    args = build_parser().parse_args(argv)
    return TodoConfig(
        db_name=args.db_name,
        command=args.command,
        task=args.task,
        backend=backend_from_env(),
    )


def setup_logging() -> None:
    """Send log records to stderr; DEBUG level when the DEBUG env var is set."""
    level = logging.DEBUG if os.environ.get("DEBUG") else logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Main entry point for the todo command."""
    setup_logging()
    try:
        config = parse_args()
        run(config, sys.stdout)
        sys.exit(0)

    except TodoError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        # Unexpected errors - preserve stack trace for debugging
        print(f"Unexpected error: {e!r}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
