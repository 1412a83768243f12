# SPDX-License-Identifier: MIT
"""Key-value storage media for the local cache and force-refresh flags."""

import sqlite3
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..exceptions import CacheMediumError
from ..logging_config import get_detail_logger
from .connection_utils import get_configured_connection
from .schema import LOCAL_STORAGE_TABLE, STORAGE_TABLES


detail_logger = get_detail_logger()


@runtime_checkable
class KeyValueStorage(Protocol):
    """A string-to-string store with no cross-key transactions.

    Implementations signal any failure (quota, corruption, unavailable
    medium) by raising :class:`CacheMediumError`.
    """

    def get_item(self, key: str) -> str | None:
        """Return the stored string or None."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove ``key``; removing a missing key is not an error."""
        ...

    def keys(self) -> list[str]:
        """Return all stored keys."""
        ...


class MemoryStorage:
    """Process-local storage.

    ``quota_bytes`` caps the total size of stored values, which lets tests
    reproduce a full medium.
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v) for k, v in self._items.items() if k != key)
            if used + len(value) > self.quota_bytes:
                raise CacheMediumError(
                    f"Storage quota exceeded ({self.quota_bytes} bytes) writing '{key}'"
                )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()


class SqliteStorage:
    """Storage backed by one table of a SQLite file.

    Every process opening the same file sees the same entries.
    """

    def __init__(self, db_path: Path, table: str = LOCAL_STORAGE_TABLE) -> None:
        if table not in STORAGE_TABLES:
            raise ValueError(f"Unknown storage table: {table}")
        self.db_path = db_path
        self.table = table

    def get_item(self, key: str) -> str | None:
        try:
            with get_configured_connection(self.db_path) as conn:
                row = conn.execute(
                    f"SELECT value FROM {self.table} WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheMediumError(f"Failed to read '{key}': {e}") from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        try:
            with get_configured_connection(self.db_path) as conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO {self.table} (key, value) VALUES (?, ?)",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise CacheMediumError(f"Failed to write '{key}': {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with get_configured_connection(self.db_path) as conn:
                conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise CacheMediumError(f"Failed to remove '{key}': {e}") from e

    def keys(self) -> list[str]:
        try:
            with get_configured_connection(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT key FROM {self.table} ORDER BY key"
                ).fetchall()
        except sqlite3.Error as e:
            raise CacheMediumError(f"Failed to list keys: {e}") from e
        return [row[0] for row in rows]
