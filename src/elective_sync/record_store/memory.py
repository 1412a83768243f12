# SPDX-License-Identifier: MIT
"""In-process Record Store used for tests and local development."""

import asyncio
import copy
import itertools
from collections.abc import Sequence
from typing import Any

from ..enums import ChangeEvent
from ..exceptions import FetchFailedError, MutationFailedError, RecordStoreError
from ..logging_config import get_detail_logger
from ..models import ChangeNotification
from .filters import Filter, matches_all
from .protocols import ChangeHandler, Row, SubscriptionHandle


detail_logger = get_detail_logger()


class InMemoryRecordStore:
    """Record Store holding tables as lists of dict rows.

    Mutations notify matching subscribers on the running event loop, after
    the mutating call has returned. Delete notifications carry only the
    deleted row's id, so subscribers cannot rebuild state from them.
    """

    def __init__(self, schema: str = "public") -> None:
        self.schema = schema
        self.tables: dict[str, list[Row]] = {}
        self.calls: list[tuple[str, str, tuple[Filter, ...]]] = []
        self._subscriptions: dict[int, tuple[SubscriptionHandle, ChangeHandler]] = {}
        self._handle_ids = itertools.count(1)
        self._pending: set[asyncio.Task[None]] = set()
        self._failures: dict[str, RecordStoreError] = {}

    # ---- test helpers ----

    def seed(self, table: str, rows: list[Row]) -> None:
        """Replace the contents of ``table``."""
        self.tables[table] = [dict(row) for row in rows]

    def fail_next(self, operation: str, error: RecordStoreError | None = None) -> None:
        """Make the next call to ``operation`` raise ``error``."""
        if error is None:
            error_cls = FetchFailedError if operation == "select" else MutationFailedError
            error = error_cls(f"Injected {operation} failure", code="PGRST000")
        self._failures[operation] = error

    @property
    def active_subscriptions(self) -> list[SubscriptionHandle]:
        return [handle for handle, _ in self._subscriptions.values()]

    async def drain(self) -> None:
        """Wait until every pending change notification has been handled."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ---- RecordStore ----

    def _record_call(self, operation: str, table: str, filters: Sequence[Filter]) -> None:
        self.calls.append((operation, table, tuple(filters)))
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    async def select(
        self, table: str, filters: Sequence[Filter] = (), columns: str = "*"
    ) -> list[Row]:
        self._record_call("select", table, filters)
        rows = [
            copy.deepcopy(row)
            for row in self.tables.get(table, [])
            if matches_all(row, filters)
        ]
        wanted = [c.strip() for c in columns.split(",") if c.strip()]
        # embedded resources are not resolved here
        if "*" in wanted:
            return rows
        return [{c: row.get(c) for c in wanted} for row in rows]

    async def insert(self, table: str, payload: Row | list[Row]) -> list[Row]:
        self._record_call("insert", table, ())
        new_rows = [dict(p) for p in (payload if isinstance(payload, list) else [payload])]
        for row in new_rows:
            if "id" not in row:
                row["id"] = self._next_row_id(table)
            self.tables.setdefault(table, []).append(row)
            self._notify(table, ChangeEvent.INSERT, row, {})
        return copy.deepcopy(new_rows)

    def _next_row_id(self, table: str) -> int:
        ids = [
            row["id"]
            for row in self.tables.get(table, [])
            if isinstance(row.get("id"), int)
        ]
        return max(ids, default=0) + 1

    async def update(
        self, table: str, filters: Sequence[Filter], payload: Row
    ) -> list[Row]:
        self._record_call("update", table, filters)
        updated = []
        for row in self.tables.get(table, []):
            if matches_all(row, filters):
                old = dict(row)
                row.update(payload)
                updated.append(copy.deepcopy(row))
                self._notify(table, ChangeEvent.UPDATE, row, old)
        return updated

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[Row]:
        self._record_call("delete", table, filters)
        rows = self.tables.get(table, [])
        removed = [row for row in rows if matches_all(row, filters)]
        self.tables[table] = [row for row in rows if not matches_all(row, filters)]
        for row in removed:
            self._notify(table, ChangeEvent.DELETE, row, row)
        return copy.deepcopy(removed)

    async def subscribe(
        self, table: str, filter: Filter | None, on_change: ChangeHandler
    ) -> SubscriptionHandle:
        handle_id = next(self._handle_ids)
        handle = SubscriptionHandle(
            id=handle_id, table=table, filter=filter, topic=f"memory:{table}:{handle_id}"
        )
        self._subscriptions[handle_id] = (handle, on_change)
        detail_logger.debug(f"Subscribed {handle.topic} (filter={filter})")
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self._subscriptions.pop(handle.id, None)
        detail_logger.debug(f"Unsubscribed {handle.topic}")

    def _notify(self, table: str, event: ChangeEvent, row: Row, old: Row) -> None:
        """Schedule handlers of subscriptions whose filter matches ``row``.

        ``row`` is the state used for filter matching; for deletes that is
        the removed row while the delivered payload only keeps its id.
        """
        if event == ChangeEvent.DELETE:
            record: dict[str, Any] = {}
            old_record = {"id": old.get("id")}
        else:
            record, old_record = dict(row), dict(old)

        for handle, handler in list(self._subscriptions.values()):
            if handle.table != table:
                continue
            if handle.filter is not None and not (
                handle.filter.matches(row) or handle.filter.matches(old)
            ):
                continue
            notification = ChangeNotification(
                table=table,
                schema=self.schema,
                event=event,
                record=record,
                old_record=old_record,
            )
            task = asyncio.get_running_loop().create_task(handler(notification))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
