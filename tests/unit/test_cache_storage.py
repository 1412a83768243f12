# SPDX-License-Identifier: MIT
"""Tests for the cache storage media and schema."""

import sqlite3
from unittest.mock import patch

import pytest

from elective_sync.cache import KeyValueStorage, MemoryStorage, SqliteStorage
from elective_sync.cache.connection_utils import get_configured_connection
from elective_sync.cache.schema import (
    LOCAL_STORAGE_TABLE,
    SESSION_STORAGE_TABLE,
    init_database,
)
from elective_sync.exceptions import CacheMediumError


@pytest.fixture
def db_path(tmp_path):
    """Initialized SQLite storage file."""
    path = tmp_path / "cache" / "test_cache.db"
    init_database(path)
    return path


class TestSchema:
    """Test cases for database initialization."""

    def test_init_database_creates_tables(self, db_path):
        """Test that both storage tables exist."""
        with sqlite3.connect(db_path) as conn:
            tables = {
                row[0]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table'"
                )
            }

        assert {LOCAL_STORAGE_TABLE, SESSION_STORAGE_TABLE} <= tables

    def test_init_database_is_idempotent(self, db_path):
        """Test that initializing twice keeps existing rows."""
        SqliteStorage(db_path).set_item("k", "v")
        init_database(db_path)

        assert SqliteStorage(db_path).get_item("k") == "v"

    def test_connection_uses_wal(self, db_path):
        """Test that configured connections enable WAL mode."""
        with get_configured_connection(db_path) as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]

        assert mode.lower() == "wal"


class TestMemoryStorage:
    """Test cases for MemoryStorage."""

    def test_set_get_remove(self):
        """Test basic operations."""
        storage = MemoryStorage()
        storage.set_item("k", "v")
        assert storage.get_item("k") == "v"

        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_remove_missing_key(self):
        """Test that removing a missing key is not an error."""
        MemoryStorage().remove_item("missing")

    def test_quota_exceeded_raises(self):
        """Test that exceeding the quota raises CacheMediumError."""
        storage = MemoryStorage(quota_bytes=8)
        storage.set_item("a", "1234")

        with pytest.raises(CacheMediumError, match="quota exceeded"):
            storage.set_item("b", "56789")

        assert storage.get_item("b") is None

    def test_quota_counts_replaced_value_once(self):
        """Test that overwriting a key does not double count it."""
        storage = MemoryStorage(quota_bytes=8)
        storage.set_item("a", "12345678")
        storage.set_item("a", "87654321")

        assert storage.get_item("a") == "87654321"

    def test_keys_and_clear(self):
        """Test listing and clearing keys."""
        storage = MemoryStorage()
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        assert storage.keys() == ["a", "b"]

        storage.clear()
        assert storage.keys() == []

    def test_satisfies_protocol(self):
        """Test the runtime protocol check."""
        assert isinstance(MemoryStorage(), KeyValueStorage)


class TestSqliteStorage:
    """Test cases for SqliteStorage."""

    def test_set_get_remove(self, db_path):
        """Test basic operations."""
        storage = SqliteStorage(db_path)
        storage.set_item("k", "v")
        assert storage.get_item("k") == "v"

        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_set_item_replaces(self, db_path):
        """Test that set_item overwrites."""
        storage = SqliteStorage(db_path)
        storage.set_item("k", "old")
        storage.set_item("k", "new")

        assert storage.get_item("k") == "new"
        assert storage.keys() == ["k"]

    def test_entries_are_shared_between_instances(self, db_path):
        """Test that two handles on one file see the same entries."""
        SqliteStorage(db_path).set_item("shared", "value")

        assert SqliteStorage(db_path).get_item("shared") == "value"

    def test_tables_are_separate(self, db_path):
        """Test that local and session storage do not share keys."""
        SqliteStorage(db_path, LOCAL_STORAGE_TABLE).set_item("k", "local")
        SqliteStorage(db_path, SESSION_STORAGE_TABLE).set_item("k", "session")

        assert SqliteStorage(db_path, LOCAL_STORAGE_TABLE).get_item("k") == "local"
        assert SqliteStorage(db_path, SESSION_STORAGE_TABLE).get_item("k") == "session"

    def test_unknown_table_raises(self, db_path):
        """Test that only the storage tables are accepted."""
        with pytest.raises(ValueError, match="Unknown storage table"):
            SqliteStorage(db_path, "journals")

    def test_missing_schema_raises_medium_error(self, tmp_path):
        """Test that SQLite errors surface as CacheMediumError."""
        storage = SqliteStorage(tmp_path / "uninitialized.db")

        with pytest.raises(CacheMediumError, match="Failed to read"):
            storage.get_item("k")

    def test_write_error_raises_medium_error(self, db_path):
        """Test that a failing write surfaces as CacheMediumError."""
        storage = SqliteStorage(db_path)

        with patch(
            "elective_sync.cache.storage.get_configured_connection",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with pytest.raises(CacheMediumError, match="database is locked"):
                storage.set_item("k", "v")

    def test_satisfies_protocol(self, db_path):
        """Test the runtime protocol check."""
        assert isinstance(SqliteStorage(db_path), KeyValueStorage)
