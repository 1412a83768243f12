# SPDX-License-Identifier: MIT
"""Database schema initialization for the persistent storage medium."""

import sqlite3
from pathlib import Path


LOCAL_STORAGE_TABLE = "local_storage"
SESSION_STORAGE_TABLE = "session_storage"

STORAGE_TABLES = (LOCAL_STORAGE_TABLE, SESSION_STORAGE_TABLE)


def init_database(db_path: Path) -> None:
    """Create the key-value tables if they do not exist.

    ``local_storage`` holds cache entries; ``session_storage`` holds
    force-refresh flags. Both are plain string-to-string maps.

    Args:
        db_path: Path to the SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        conn.executescript(
            f"""
            CREATE TABLE IF NOT EXISTS {LOCAL_STORAGE_TABLE} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS {SESSION_STORAGE_TABLE} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        conn.commit()
