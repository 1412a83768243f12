# SPDX-License-Identifier: MIT
"""Views kept consistent with the Record Store.

A :class:`SyncedView` is what every list or detail page consumes. It
renders from the cache when it can, applies this client's confirmed writes
to its in-memory state without a refetch, and re-fetches whenever the
Record Store reports a change to a watched table.
"""

from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Generic, TypeVar

from ..cache import CacheLoader, LocalCache, get_cache_loader
from ..exceptions import FetchFailedError, MutationFailedError, RecordStoreError
from ..logging_config import get_detail_logger
from ..models import ChangeNotification, Failed, Loading, Ready, ViewState
from ..record_store import Filter, RecordStore, Row
from .subscriptions import SubscriptionScope


detail_logger = get_detail_logger()

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Watch:
    """A ``(table, filter)`` pair whose changes trigger a re-fetch."""

    table: str
    filter: Filter | None = None


class SyncedView(Generic[T]):
    """Cache-backed view state for one query.

    Mount with ``async with view:`` to subscribe to the watched tables and
    run the initial load; leaving the block releases the subscriptions.
    """

    def __init__(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        store: RecordStore,
        *,
        watches: Sequence[Watch] = (),
        ttl: timedelta | None = None,
        refresh_flag: str | None = None,
        loader: CacheLoader | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize the view.

        Args:
            key: Cache key, built with :mod:`elective_sync.cache.keys`
            fetcher: Coroutine factory running the view's query
            store: Record Store used for subscriptions
            watches: Tables (and filters) whose changes trigger a re-fetch
            ttl: Freshness window; defaults to the cache's TTL
            refresh_flag: Force-refresh flag consumed on load
            loader: Loader to use; defaults to one over the shared cache
            name: Label for log messages; defaults to the key
        """
        self.key = key
        self.fetcher = fetcher
        self.store = store
        self.watches = tuple(watches)
        self.ttl = ttl
        self.refresh_flag = refresh_flag
        self.loader = loader or get_cache_loader()
        self.name = name or key
        self.state: ViewState = Loading()
        self.scope: SubscriptionScope | None = None

    @property
    def cache(self) -> LocalCache:
        return self.loader.cache

    @property
    def data(self) -> T | None:
        """The loaded data, or None unless the view is ready."""
        return self.state.data if isinstance(self.state, Ready) else None

    @property
    def mounted(self) -> bool:
        return self.scope is not None and self.scope.alive

    async def __aenter__(self) -> "SyncedView[T]":
        scope = SubscriptionScope(self.store, self.name)
        await scope.__aenter__()
        self.scope = scope
        try:
            for watch in self.watches:
                await scope.watch(watch.table, watch.filter, self.handle_change)
            await self.refresh()
        except BaseException:
            await scope.close()
            raise
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        if self.scope is not None:
            await self.scope.close()

    def _set_state(self, state: ViewState) -> bool:
        """Replace the state unless the view has been unmounted."""

        def update() -> None:
            self.state = state

        if self.scope is None:
            update()
            return True
        return self.scope.guard(update)

    async def refresh(self, force: bool = False) -> ViewState:
        """Load the view's data, from cache when fresh.

        A failed load always ends in the error state, even if the view was
        showing data before, so stale data is never presented as current.

        Args:
            force: Bypass the cache

        Returns:
            The resulting state
        """
        if force or not isinstance(self.state, Ready):
            self._set_state(Loading())

        try:
            data = await self.loader.load(
                self.key,
                self.fetcher,
                ttl=self.ttl,
                refresh_flag=self.refresh_flag,
                force=force,
            )
        except FetchFailedError as e:
            detail_logger.warning(f"Loading '{self.name}' failed: {e}")
            self._set_state(Failed(detail=e.message, code=e.code))
            return self.state

        self._set_state(Ready(data=data))
        return self.state

    async def mutate(
        self,
        action: Callable[[], Awaitable[R]],
        transform: Callable[[T, R], T],
        invalidate: Iterable[str] | None = None,
    ) -> R:
        """Run a confirmed write and apply it to the in-memory state.

        The state changes only after ``action`` succeeds, so a failure
        needs no rollback and leaves both state and cache untouched.

        A re-fetch that started before ``action`` may still land after it
        and briefly show the pre-write rows; the echo of the write corrects
        it. This race is not detected.

        Args:
            action: Coroutine factory performing the Record Store write
            transform: Maps ``(current data, action result)`` to the new data
            invalidate: Cache keys to drop after success; defaults to the
                view's own key. Each key is invalidated once.

        Returns:
            The action's result

        Raises:
            MutationFailedError: If the write is rejected
        """
        try:
            result = await action()
        except MutationFailedError as e:
            detail_logger.warning(f"Mutation on '{self.name}' failed: {e}")
            raise
        except RecordStoreError as e:
            detail_logger.warning(f"Mutation on '{self.name}' failed: {e}")
            raise MutationFailedError(e.message, code=e.code, table=e.table) from e

        if isinstance(self.state, Ready):
            self._set_state(Ready(data=transform(self.state.data, result)))

        keys = (self.key,) if invalidate is None else tuple(invalidate)
        self.cache.invalidate_many(dict.fromkeys(keys))
        return result

    async def handle_change(self, notification: ChangeNotification) -> None:
        """Re-fetch the whole query after a pushed change.

        The notification payload is never merged into state since deletes
        and some updates arrive without the row's content. A failed
        re-fetch ends in the error state; the previous cache entry is kept.
        """
        detail_logger.debug(
            f"{notification.event.value} on {notification.table}, re-fetching '{self.name}'"
        )
        try:
            data = await self.loader.load(self.key, self.fetcher, force=True)
        except FetchFailedError as e:
            detail_logger.warning(f"Re-fetch of '{self.name}' after change failed: {e}")
            self._set_state(Failed(detail=e.message, code=e.code))
            return

        self._set_state(Ready(data=data))


def map_record(rows: list[Row], record_id: Any, **changes: Any) -> list[Row]:
    """Return ``rows`` with ``changes`` applied to the row whose id matches."""
    return [
        {**row, **changes} if row.get("id") == record_id else row for row in rows
    ]


def drop_record(rows: list[Row], record_id: Any) -> list[Row]:
    """Return ``rows`` without the row whose id matches."""
    return [row for row in rows if row.get("id") != record_id]


def append_records(rows: list[Row], new_rows: list[Row]) -> list[Row]:
    """Return ``rows`` followed by ``new_rows``."""
    return [*rows, *new_rows]
