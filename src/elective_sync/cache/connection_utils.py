# SPDX-License-Identifier: MIT
"""SQLite connection helper for the persistent storage medium.

Several processes may open the same cache file at once (the equivalent of
several browser tabs sharing one ``localStorage``), so every connection uses
WAL mode and a busy timeout.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..logging_config import get_detail_logger


detail_logger = get_detail_logger()


def configure_sqlite_connection(conn: sqlite3.Connection, enable_wal: bool = True) -> None:
    """Apply the PRAGMA settings shared by all cache connections.

    Args:
        conn: SQLite database connection to configure
        enable_wal: Whether to enable WAL mode (default: True)
    """
    if enable_wal:
        conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA temp_store = MEMORY")


@contextmanager
def get_configured_connection(
    db_path: str | Path,
    timeout: float = 5.0,
    enable_wal: bool = True,
) -> Iterator[sqlite3.Connection]:
    """Open a configured SQLite connection and close it on exit.

    The connection commits on normal exit of the ``with`` block and rolls
    back if the block raises.

    Args:
        db_path: Path to the SQLite database file
        timeout: Busy timeout in seconds
        enable_wal: Whether to enable WAL mode

    Yields:
        Configured SQLite connection
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)

    try:
        configure_sqlite_connection(conn, enable_wal=enable_wal)
        with conn:
            yield conn
    finally:
        conn.close()
