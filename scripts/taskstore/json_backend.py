"""JSON file-based key-value store backend.

The whole store is one JSON object mapping bucket names to objects of
key -> value. Values are kept as UTF-8 text. Every write goes to a temporary
file that is atomically moved over the store file (temp file + os.replace).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from taskstore.errors import StorageError

logger = logging.getLogger(__name__)

Buckets = dict[str, dict[str, str]]


class JSONStorageBackend:
    """JSON file-based key-value store.

    A missing file is treated as an empty store. A file that exists but is
    not a JSON object of objects is reported as a StorageError rather than
    silently discarded.

    Attributes:
        store_file: The Path to the JSON store file.

    Example:
        with JSONStorageBackend(Path.home() / ".todos.json") as store:
            store.ensure_bucket("default")
            value = store.get("default", "todos")
    """

    def __init__(self, store_file: Path) -> None:
        """Initialize the JSON store backend.

        Args:
            store_file: The path to the JSON store file.
        """
        self.store_file = store_file
        self._closed = False
        logger.debug("Opened JSON store %s", self.store_file)

    def _read(self) -> Buckets:
        if self._closed:
            raise StorageError(f"store {self.store_file} is closed")
        try:
            with open(self.store_file, "r", encoding="utf-8") as f:
                data: Any = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageError(f"corrupted store {self.store_file}: {e}") from e
        except OSError as e:
            raise StorageError(f"cannot read store {self.store_file}: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(b, dict) for b in data.values()
        ):
            raise StorageError(
                f"corrupted store {self.store_file}: expected an object of buckets"
            )
        return data

    def _write(self, buckets: Buckets) -> None:
        """Write all buckets to a temp file, then atomically rename it."""
        try:
            self.store_file.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self.store_file.parent, suffix=".tmp"
            )
        except OSError as e:
            raise StorageError(f"cannot write store {self.store_file}: {e}") from e

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(buckets, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.store_file)  # Atomic on POSIX
        except (OSError, TypeError, ValueError) as e:
            # Clean up temp file on failure
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"cannot write store {self.store_file}: {e}") from e

    def _bucket(self, buckets: Buckets, bucket: str) -> dict[str, str]:
        try:
            return buckets[bucket]
        except KeyError:
            raise StorageError(f"bucket {bucket!r} does not exist") from None

    def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket if it does not exist."""
        buckets = self._read()
        if bucket in buckets:
            return
        buckets[bucket] = {}
        self._write(buckets)
        logger.debug("Created bucket %r in %s", bucket, self.store_file)

    def get(self, bucket: str, key: str) -> bytes | None:
        """Read the value stored under key in bucket."""
        value = self._bucket(self._read(), bucket).get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise StorageError(f"corrupted value at {bucket}/{key}: expected text")
        return value.encode("utf-8")

    def put(self, bucket: str, key: str, value: bytes) -> None:
        """Replace the value under key and rewrite the store file atomically."""
        buckets = self._read()
        try:
            text = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(f"cannot write {bucket}/{key}: value is not UTF-8") from e
        self._bucket(buckets, bucket)[key] = text
        self._write(buckets)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            logger.debug("Closed JSON store %s", self.store_file)

    def __enter__(self) -> JSONStorageBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
