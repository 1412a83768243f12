# SPDX-License-Identifier: MIT
"""Scoped ownership of realtime subscriptions."""

from collections.abc import Callable

from ..exceptions import RecordStoreError
from ..logging_config import get_detail_logger
from ..models import ChangeNotification
from ..record_store import ChangeHandler, Filter, RecordStore, SubscriptionHandle


detail_logger = get_detail_logger()


class SubscriptionScope:
    """Owns the subscriptions of one mounted view.

    Handles opened with :meth:`watch` are released when the scope exits,
    whether the ``async with`` body finishes, raises or is cancelled. After
    exit the scope is no longer alive: pending change handlers become
    no-ops and :meth:`guard` refuses state updates.

    Example:
        >>> async with SubscriptionScope(store, "groups") as scope:
        ...     await scope.watch("groups", None, on_groups_changed)
    """

    def __init__(self, store: RecordStore, name: str = "view") -> None:
        self.store = store
        self.name = name
        self.handles: list[SubscriptionHandle] = []
        self.alive = False

    async def __aenter__(self) -> "SubscriptionScope":
        self.alive = True
        detail_logger.debug(f"Scope '{self.name}' mounted")
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.close()

    async def watch(
        self, table: str, filter: Filter | None, handler: ChangeHandler
    ) -> SubscriptionHandle:
        """Subscribe ``handler`` to changes on ``table`` for this scope's lifetime.

        Raises:
            RuntimeError: If the scope is not mounted
        """
        if not self.alive:
            raise RuntimeError(f"Scope '{self.name}' is not mounted")

        async def scoped_handler(notification: ChangeNotification) -> None:
            if not self.alive:
                detail_logger.debug(
                    f"Scope '{self.name}' unmounted, dropping {notification.event.value} "
                    f"on {notification.table}"
                )
                return
            await handler(notification)

        handle = await self.store.subscribe(table, filter, scoped_handler)
        self.handles.append(handle)
        return handle

    def guard(self, update: Callable[[], None]) -> bool:
        """Run ``update`` only while the scope is alive.

        Returns:
            True if the update ran
        """
        if not self.alive:
            detail_logger.debug(f"Skipped state update for unmounted scope '{self.name}'")
            return False
        update()
        return True

    async def close(self) -> None:
        """Release every handle. Safe to call more than once."""
        self.alive = False
        handles, self.handles = self.handles, []
        for handle in handles:
            try:
                await self.store.unsubscribe(handle)
            except (RecordStoreError, ConnectionError) as e:
                detail_logger.warning(
                    f"Failed to release subscription {handle.topic} of '{self.name}': {e}"
                )
        if handles:
            detail_logger.debug(
                f"Scope '{self.name}' released {len(handles)} subscription(s)"
            )
