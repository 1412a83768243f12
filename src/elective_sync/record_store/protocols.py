# SPDX-License-Identifier: MIT
"""Record Store interface consumed by the cache-and-sync layer."""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..models import ChangeNotification
from .filters import Filter


Row = dict[str, Any]
ChangeHandler = Callable[[ChangeNotification], Awaitable[None]]


@dataclass(frozen=True)
class SubscriptionHandle:
    """One active change subscription bound to ``(table, filter)``."""

    id: int
    table: str
    filter: Filter | None = None
    topic: str = ""


@runtime_checkable
class RecordStore(Protocol):
    """A queryable, mutable collection of records with change notifications.

    Reads raise :class:`~elective_sync.exceptions.FetchFailedError` and
    writes raise :class:`~elective_sync.exceptions.MutationFailedError`.
    Writes return the affected rows.
    """

    async def select(
        self, table: str, filters: Sequence[Filter] = (), columns: str = "*"
    ) -> list[Row]:
        ...

    async def insert(self, table: str, payload: Row | list[Row]) -> list[Row]:
        ...

    async def update(
        self, table: str, filters: Sequence[Filter], payload: Row
    ) -> list[Row]:
        ...

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[Row]:
        ...

    async def subscribe(
        self, table: str, filter: Filter | None, on_change: ChangeHandler
    ) -> SubscriptionHandle:
        ...

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        ...
