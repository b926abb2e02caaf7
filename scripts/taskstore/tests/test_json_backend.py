"""Tests for JSONStorageBackend.

This module tests the JSON file backend, verifying:
- The on-disk layout of buckets and keys
- Atomic writes via temporary file and os.replace
- Corrupted files are reported rather than discarded
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from taskstore.errors import StorageError
from taskstore.json_backend import JSONStorageBackend


# =============================================================================
# TestFileLayout
# =============================================================================


class TestFileLayout:
    """Tests for the JSON document written to disk."""

    def test_should_not_create_file_until_first_write(
        self, json_backend: JSONStorageBackend
    ) -> None:
        """Verify opening the store does not touch the filesystem."""
        assert not json_backend.store_file.exists()

    def test_should_write_buckets_as_objects(
        self, json_backend: JSONStorageBackend
    ) -> None:
        """Verify the file maps bucket -> key -> text value."""
        json_backend.ensure_bucket("default")
        json_backend.put("default", "todos", b'[{"task": "x"}]')

        with open(json_backend.store_file, encoding="utf-8") as f:
            data = json.load(f)

        assert data == {"default": {"todos": '[{"task": "x"}]'}}

    def test_should_not_rewrite_existing_bucket(
        self, json_backend: JSONStorageBackend
    ) -> None:
        """Verify ensure_bucket on an existing bucket skips the write."""
        json_backend.ensure_bucket("default")
        with patch.object(json_backend, "_write") as mock_write:
            json_backend.ensure_bucket("default")
        mock_write.assert_not_called()


# =============================================================================
# TestAtomicWrites
# =============================================================================


class TestAtomicWrites:
    """Tests for temp file handling during writes."""

    def test_should_leave_no_temp_files(self, json_backend: JSONStorageBackend) -> None:
        """Verify successful writes clean up after themselves."""
        json_backend.ensure_bucket("default")
        json_backend.put("default", "todos", b"[]")

        leftovers = list(json_backend.store_file.parent.glob("*.tmp"))
        assert leftovers == []

    def test_failed_replace_should_keep_old_file(
        self, json_backend: JSONStorageBackend
    ) -> None:
        """Verify an interrupted write leaves the previous value readable."""
        json_backend.ensure_bucket("default")
        json_backend.put("default", "todos", b"[1]")

        with patch("taskstore.json_backend.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError, match="disk full"):
                json_backend.put("default", "todos", b"[2]")

        assert json_backend.get("default", "todos") == b"[1]"
        assert list(json_backend.store_file.parent.glob("*.tmp")) == []

    def test_should_use_os_replace(self, json_backend: JSONStorageBackend) -> None:
        """Verify the final step of a write is an atomic rename."""
        with patch("taskstore.json_backend.os.replace", wraps=os.replace) as mock_replace:
            json_backend.ensure_bucket("default")

        mock_replace.assert_called_once()
        assert mock_replace.call_args[0][1] == json_backend.store_file


# =============================================================================
# TestCorruption
# =============================================================================


class TestCorruption:
    """Tests for unreadable store files."""

    @pytest.mark.parametrize(
        "content",
        [
            "not valid json {{{",
            "[]",
            '{"default": []}',
            '"just a string"',
        ],
    )
    def test_should_raise_for_corrupted_file(self, tmp_home: Path, content: str) -> None:
        """Verify malformed documents are reported as StorageError."""
        store_file = tmp_home / ".todos.json"
        store_file.write_text(content, encoding="utf-8")

        with JSONStorageBackend(store_file) as store:
            with pytest.raises(StorageError, match="corrupted store"):
                store.ensure_bucket("default")

        assert store_file.read_text(encoding="utf-8") == content

    def test_should_raise_for_non_text_value(self, tmp_home: Path) -> None:
        """Verify a value that is not a string is rejected."""
        store_file = tmp_home / ".todos.json"
        store_file.write_text('{"default": {"todos": [1, 2]}}', encoding="utf-8")

        with JSONStorageBackend(store_file) as store:
            with pytest.raises(StorageError, match="expected text"):
                store.get("default", "todos")

    def test_should_reject_non_utf8_value(self, json_backend: JSONStorageBackend) -> None:
        """Verify values must be UTF-8 since they are stored as JSON text."""
        json_backend.ensure_bucket("default")
        with pytest.raises(StorageError, match="not UTF-8"):
            json_backend.put("default", "todos", b"\xff\xfe")

    def test_should_report_unreadable_file_as_storage_error(
        self, json_backend: JSONStorageBackend
    ) -> None:
        """Verify permission errors while reading become StorageError."""
        with patch(
            "taskstore.json_backend.open",
            side_effect=PermissionError("permission denied"),
            create=True,
        ):
            with pytest.raises(StorageError, match="cannot read store"):
                json_backend.ensure_bucket("default")

    def test_deleted_file_should_read_as_empty_store(
        self, json_backend: JSONStorageBackend
    ) -> None:
        """Verify a missing file reads as a store with no buckets."""
        json_backend.ensure_bucket("default")
        json_backend.store_file.unlink()

        with pytest.raises(StorageError, match="does not exist"):
            json_backend.get("default", "todos")
