#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Manager selection page example using the elective-sync Python API.

This script demonstrates:
1. Mounting a cache-backed view over an in-memory Record Store
2. Approving a selection without a re-fetch
3. Realtime re-fetch after another client inserts a selection
"""

import asyncio
from datetime import timedelta

from elective_sync.cache import CacheLoader, LocalCache, MemoryStorage, RefreshFlags
from elective_sync.exports import selections_to_csv
from elective_sync.record_store import InMemoryRecordStore
from elective_sync.sync.pages import (
    COURSE_SELECTIONS_TABLE,
    approve_selection,
    course_selections_view,
)


async def main() -> None:
    store = InMemoryRecordStore()
    store.seed(
        COURSE_SELECTIONS_TABLE,
        [
            {
                "id": 1,
                "elective_courses_id": 42,
                "student_id": "s-1",
                "status": "pending",
                "created_at": "2024-03-05T10:00:00Z",
                "profiles": {"full_name": "Anna Petrova", "email": "anna@example.edu"},
            },
        ],
    )

    loader = CacheLoader(
        LocalCache(MemoryStorage(), ttl=timedelta(minutes=60)),
        RefreshFlags(MemoryStorage()),
    )

    print("=== Mount ===")
    async with course_selections_view(store, 42, loader=loader) as view:
        print(f"State: {view.state.status}, {len(view.data or [])} selection(s)")

        print("\n=== Approve ===")
        await approve_selection(view, COURSE_SELECTIONS_TABLE, 1)
        print(f"Selection 1 is now {view.data[0]['status']}")

        print("\n=== Another client inserts ===")
        await store.insert(
            COURSE_SELECTIONS_TABLE,
            {"elective_courses_id": 42, "student_id": "s-2", "status": "pending"},
        )
        await store.drain()
        print(f"View re-fetched: {len(view.data or [])} selection(s)")

        print("\n=== CSV ===")
        print(selections_to_csv(view.data or []))


if __name__ == "__main__":
    asyncio.run(main())
