# SPDX-License-Identifier: MIT
"""Cache-first loading of Record Store queries."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from ..exceptions import FetchFailedError, RecordStoreError, RecordStoreTimeoutError
from ..logging_config import get_detail_logger
from .local_cache import LocalCache
from .refresh_flags import RefreshFlags


detail_logger = get_detail_logger()

Fetcher = Callable[[], Awaitable[Any]]


class CacheLoader:
    """Returns a fresh cached value or fetches, stores and returns a new one.

    Concurrent loads of one key each call their fetcher unless
    ``coalesce`` is enabled, in which case callers arriving while a fetch
    is in flight share its result. A forced load always starts its own
    fetch, which then becomes the one later callers share.
    """

    def __init__(
        self,
        cache: LocalCache,
        flags: RefreshFlags | None = None,
        fetch_timeout: float | None = None,
        coalesce: bool = False,
    ) -> None:
        """Initialize the loader.

        Args:
            cache: Cache to read from and write to
            flags: Force-refresh flags consulted when ``load`` names one
            fetch_timeout: Seconds before a fetch is abandoned; None waits forever
            coalesce: Share one in-flight fetch per key between callers
        """
        self.cache = cache
        self.flags = flags
        self.fetch_timeout = fetch_timeout
        self.coalesce = coalesce
        self._in_flight: dict[str, asyncio.Task[Any]] = {}

    async def load(
        self,
        key: str,
        fetcher: Fetcher,
        ttl: timedelta | None = None,
        refresh_flag: str | None = None,
        force: bool = False,
    ) -> Any:
        """Load ``key`` from cache, falling back to ``fetcher``.

        Args:
            key: Namespaced cache key
            fetcher: Zero-argument coroutine factory querying the Record Store
            ttl: Freshness window; defaults to the cache's TTL
            refresh_flag: Force-refresh flag to consume before reading
            force: Bypass the cache regardless of freshness. Unlike a
                consumed flag, this keeps the entry until a fetch succeeds

        Returns:
            The cached or freshly fetched payload

        Raises:
            FetchFailedError: If the fetch fails; the cache is left untouched
        """
        if refresh_flag and self.flags is not None and self.flags.consume(refresh_flag):
            detail_logger.debug(f"Force refresh flag '{refresh_flag}' honored for '{key}'")
            self.cache.invalidate(key)
            force = True

        if not force:
            cached = self.cache.get(key, ttl)
            if cached is not None:
                return cached

        if not self.coalesce:
            return await self._fetch_and_store(key, fetcher)

        # forced loads never join an in-flight fetch
        task = None if force else self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_shared(key, fetcher))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            detail_logger.debug(f"Joining in-flight fetch for '{key}'")
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _fetch_and_store(self, key: str, fetcher: Fetcher) -> Any:
        result = await self._fetch(key, fetcher)
        self.cache.put(key, result)
        return result

    async def _fetch_shared(self, key: str, fetcher: Fetcher) -> Any:
        """Fetch as the shared in-flight task, caching only if not superseded."""
        result = await self._fetch(key, fetcher)
        if self._in_flight.get(key) is asyncio.current_task():
            self.cache.put(key, result)
        else:
            detail_logger.debug(f"Superseded fetch for '{key}' not cached")
        return result

    async def _fetch(self, key: str, fetcher: Fetcher) -> Any:
        detail_logger.debug(f"Fetching '{key}' from Record Store")
        try:
            if self.fetch_timeout is not None:
                result = await asyncio.wait_for(fetcher(), self.fetch_timeout)
            else:
                result = await fetcher()
        except FetchFailedError:
            raise
        except asyncio.TimeoutError as e:
            raise RecordStoreTimeoutError(timeout=self.fetch_timeout) from e
        except RecordStoreError as e:
            raise FetchFailedError(e.message, code=e.code, table=e.table) from e
        except Exception as e:
            # Any fetcher failure counts as a failed fetch
            raise FetchFailedError(f"Failed to load '{key}': {e}") from e

        return result
