# SPDX-License-Identifier: MIT
"""Local cache for server-owned records.

- LocalCache: TTL-bounded snapshots with lazy expiry
- CacheLoader: cache-first loading with force refresh and optional coalescing
- RefreshFlags: one-shot force-refresh sentinels
- MemoryStorage / SqliteStorage: storage media
- keys: key builders enforcing per-query namespacing
"""

from datetime import timedelta
from pathlib import Path

from ..config import get_config_manager
from ..enums import StorageBackend
from . import keys
from .loader import CacheLoader
from .local_cache import LocalCache, epoch_ms
from .refresh_flags import RefreshFlags
from .schema import LOCAL_STORAGE_TABLE, SESSION_STORAGE_TABLE, init_database
from .storage import KeyValueStorage, MemoryStorage, SqliteStorage


# Process-wide instances, shared by every view
_local_cache_instance: LocalCache | None = None
_refresh_flags_instance: RefreshFlags | None = None


def _create_storage(table: str) -> KeyValueStorage:
    cache_config = get_config_manager().load_config().cache
    if cache_config.backend == StorageBackend.MEMORY:
        return MemoryStorage()
    db_path = Path(cache_config.db_path)
    init_database(db_path)
    return SqliteStorage(db_path, table)


def get_local_cache() -> LocalCache:
    """Get or create the global local cache instance.

    Returns:
        The global LocalCache instance
    """
    global _local_cache_instance
    if _local_cache_instance is None:
        ttl_minutes = get_config_manager().load_config().cache.ttl_minutes
        _local_cache_instance = LocalCache(
            _create_storage(LOCAL_STORAGE_TABLE), ttl=timedelta(minutes=ttl_minutes)
        )
    return _local_cache_instance


def set_local_cache(cache: LocalCache) -> None:
    """Set the local cache instance (primarily for testing)."""
    global _local_cache_instance
    _local_cache_instance = cache


def get_refresh_flags() -> RefreshFlags:
    """Get or create the global force-refresh flags instance."""
    global _refresh_flags_instance
    if _refresh_flags_instance is None:
        _refresh_flags_instance = RefreshFlags(_create_storage(SESSION_STORAGE_TABLE))
    return _refresh_flags_instance


def set_refresh_flags(flags: RefreshFlags) -> None:
    """Set the force-refresh flags instance (primarily for testing)."""
    global _refresh_flags_instance
    _refresh_flags_instance = flags


def get_cache_loader() -> CacheLoader:
    """Create a loader over the shared cache and flags, configured from config."""
    cache_config = get_config_manager().load_config().cache
    return CacheLoader(
        get_local_cache(),
        get_refresh_flags(),
        fetch_timeout=cache_config.fetch_timeout_seconds,
        coalesce=cache_config.coalesce_requests,
    )


def reset_local_cache() -> None:
    """Reset the cache and flags instances (primarily for testing)."""
    global _local_cache_instance, _refresh_flags_instance
    _local_cache_instance = None
    _refresh_flags_instance = None


__all__ = [
    "CacheLoader",
    "KeyValueStorage",
    "LocalCache",
    "MemoryStorage",
    "RefreshFlags",
    "SqliteStorage",
    "epoch_ms",
    "get_cache_loader",
    "get_local_cache",
    "get_refresh_flags",
    "init_database",
    "keys",
    "reset_local_cache",
    "set_local_cache",
    "set_refresh_flags",
]
