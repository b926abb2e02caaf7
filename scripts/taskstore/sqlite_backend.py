"""SQLite key-value store backend.

Each bucket is a two-column table (key, value). Writes run inside IMMEDIATE
transactions in WAL mode, so a value is either fully replaced or left as it
was, and SQLite's file locking serializes writers from separate processes.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from taskstore.errors import StorageError

logger = logging.getLogger(__name__)

BUCKET_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL
)
"""


def _quote_bucket(bucket: str) -> str:
    """Quote a bucket name for use as a SQLite table identifier."""
    if not bucket or "\x00" in bucket:
        raise StorageError(f"invalid bucket name: {bucket!r}")
    return '"' + bucket.replace('"', '""') + '"'


class SQLiteStorageBackend:
    """SQLite-backed key-value store.

    Holds a single connection for the lifetime of the object. Use it as a
    context manager so the connection is closed when the command finishes.

    Attributes:
        db_path: The Path to the SQLite database file.

    Example:
        with SQLiteStorageBackend(Path.home() / ".todos") as store:
            store.ensure_bucket("default")
            store.put("default", "todos", b"[]")
    """

    def __init__(self, db_path: Path) -> None:
        """Open (creating if needed) the database at db_path.

        Args:
            db_path: The path to the SQLite database file.

        Raises:
            StorageError: If the file cannot be opened as a SQLite database.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = self._connect()
        logger.debug("Opened SQLite store %s", self.db_path)

    def _connect(self) -> sqlite3.Connection:
        """Create and configure the database connection.

        Enables WAL mode and sets IMMEDIATE isolation so each write takes
        the database write lock before touching any row.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), isolation_level="IMMEDIATE")
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"cannot open store {self.db_path}: {e}") from e
        try:
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            conn.close()
            raise StorageError(f"cannot open store {self.db_path}: {e}") from e
        return conn

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError(f"store {self.db_path} is closed")
        return self._conn

    def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket table if it does not exist."""
        table = _quote_bucket(bucket)
        try:
            self.conn.execute(BUCKET_SCHEMA_SQL.format(table=table))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"cannot create bucket {bucket!r}: {e}") from e

    def get(self, bucket: str, key: str) -> bytes | None:
        """Read the value stored under key in bucket."""
        table = _quote_bucket(bucket)
        try:
            row = self.conn.execute(
                f"SELECT value FROM {table} WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"cannot read {bucket}/{key}: {e}") from e
        if row is None:
            return None
        return bytes(row[0])

    def put(self, bucket: str, key: str, value: bytes) -> None:
        """Replace the value under key inside a single transaction."""
        table = _quote_bucket(bucket)
        conn = self.conn
        try:
            conn.execute(
                f"INSERT OR REPLACE INTO {table} (key, value) VALUES (?, ?)",
                (key, sqlite3.Binary(value)),
            )
            conn.commit()
        except sqlite3.Error as e:
            try:
                conn.rollback()
            except sqlite3.Error:
                pass  # Connection may be in bad state after commit failure
            raise StorageError(f"cannot write {bucket}/{key}: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Closed SQLite store %s", self.db_path)

    def __enter__(self) -> SQLiteStorageBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
