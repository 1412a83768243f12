# SPDX-License-Identifier: MIT
"""TTL-bounded local snapshot cache for server-owned records."""

import time
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import Any

from ..constants import DEFAULT_CACHE_TTL_MINUTES
from ..exceptions import CacheMediumError
from ..logging_config import get_detail_logger
from ..models import CacheEntry, StoredEntry
from .storage import KeyValueStorage


detail_logger = get_detail_logger()


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class LocalCache:
    """Serves stale-but-fast reads from a key-value storage medium.

    Entries expire lazily: nothing is removed until a read finds the entry
    older than its TTL. The cache is an optimization, so storage failures
    are logged and turned into misses or no-ops instead of raised.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        ttl: timedelta = timedelta(minutes=DEFAULT_CACHE_TTL_MINUTES),
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """Initialize the cache.

        Args:
            storage: Medium holding serialized entries
            ttl: Default time-to-live for :meth:`get`
            clock: Callable returning the current time in epoch milliseconds
        """
        self.storage = storage
        self.ttl = ttl
        self.clock = clock

    def _ttl_ms(self, ttl: timedelta | None) -> int:
        return int((ttl if ttl is not None else self.ttl).total_seconds() * 1000)

    def _read_entry(self, key: str) -> StoredEntry | None:
        """Read and parse the stored entry, evicting it if it is unparsable."""
        try:
            raw = self.storage.get_item(key)
        except CacheMediumError as e:
            detail_logger.warning(f"Error reading from cache ({key}): {e}")
            return None

        if raw is None:
            return None

        try:
            return StoredEntry.model_validate_json(raw)
        except ValueError as e:
            detail_logger.warning(f"Discarding unparsable cache entry ({key}): {e}")
            self.invalidate(key)
            return None

    def get(self, key: str, ttl: timedelta | None = None) -> Any | None:
        """Return the cached payload if present and fresh.

        A stale entry is evicted as a side effect and reported as a miss.

        Args:
            key: Namespaced cache key
            ttl: Override for the cache's default TTL

        Returns:
            The payload, or None on a miss
        """
        entry = self._read_entry(key)
        if entry is None:
            detail_logger.debug(f"Cache miss for key '{key}'")
            return None

        age_ms = self.clock() - entry.timestamp
        if age_ms > self._ttl_ms(ttl):
            detail_logger.debug(f"Cache expired for key '{key}' (age {age_ms}ms)")
            self.invalidate(key)
            return None

        detail_logger.debug(f"Cache hit for key '{key}'")
        return entry.data

    def peek(self, key: str) -> CacheEntry[Any] | None:
        """Return the stored entry without checking or enforcing its TTL."""
        entry = self._read_entry(key)
        if entry is None:
            return None
        return CacheEntry[Any](key=key, payload=entry.data, stored_at=entry.timestamp)

    def put(self, key: str, payload: Any) -> None:
        """Store ``payload`` under ``key`` stamped with the current time.

        Serialization and storage failures are logged and ignored; the
        entry simply does not land.
        """
        try:
            serialized = StoredEntry(data=payload, timestamp=self.clock()).model_dump_json()
            self.storage.set_item(key, serialized)
        except (CacheMediumError, ValueError, TypeError) as e:
            detail_logger.warning(f"Error writing to cache ({key}): {e}")
            return

        detail_logger.debug(f"Stored cache entry for key '{key}'")

    def invalidate(self, key: str) -> None:
        """Remove the entry for ``key`` unconditionally."""
        try:
            self.storage.remove_item(key)
        except CacheMediumError as e:
            detail_logger.warning(f"Error invalidating cache ({key}): {e}")
            return

        detail_logger.debug(f"Invalidated cache entry for key '{key}'")

    def invalidate_many(self, keys: Iterable[str]) -> None:
        """Invalidate each key in ``keys``."""
        for key in keys:
            self.invalidate(key)

    def purge_expired(self, ttl: timedelta | None = None) -> int:
        """Evict every expired entry.

        This is an explicit sweep for maintenance commands; reads never
        depend on it.

        Returns:
            Number of expired entries removed
        """
        try:
            keys = self.storage.keys()
        except CacheMediumError as e:
            detail_logger.warning(f"Error listing cache keys: {e}")
            return 0

        ttl_ms = self._ttl_ms(ttl)
        now = self.clock()
        removed = 0
        for key in keys:
            # Unparsable entries are evicted inside _read_entry
            entry = self._read_entry(key)
            if entry is not None and now - entry.timestamp > ttl_ms:
                self.invalidate(key)
                removed += 1

        detail_logger.info(f"Purged {removed} expired cache entries")
        return removed
