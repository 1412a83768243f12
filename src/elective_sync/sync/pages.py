# SPDX-License-Identifier: MIT
"""Views and actions for the portal's list and detail pages.

Each page is a thin consumer of :class:`SyncedView`: it names its cache
key, its query, the tables it watches and the keys its writes invalidate.
"""

from typing import Any

from ..cache import CacheLoader, keys
from ..constants import FORCE_REFRESH_EXCHANGE_LIST, FORCE_REFRESH_STUDENT_COURSES
from ..enums import SelectionStatus
from ..record_store import RecordStore, Row, eq
from .view import SyncedView, Watch, append_records, drop_record, map_record


COURSE_SELECTIONS_TABLE = "course_selections"
EXCHANGE_SELECTIONS_TABLE = "exchange_selections"
ELECTIVE_COURSES_TABLE = "elective_courses"
ELECTIVE_EXCHANGE_TABLE = "elective_exchange"
GROUPS_TABLE = "groups"
COURSES_TABLE = "courses"
UNIVERSITIES_TABLE = "universities"

SELECTION_WITH_PROFILE_COLUMNS = "*, profiles!student_id(id, full_name, email)"


def course_selections_view(
    store: RecordStore, pack_id: str | int, loader: CacheLoader | None = None
) -> SyncedView[list[Row]]:
    """Student selections for one course pack, as listed for a manager."""
    pack_filter = eq("elective_courses_id", pack_id)

    async def fetch() -> list[Row]:
        return await store.select(
            COURSE_SELECTIONS_TABLE, [pack_filter], SELECTION_WITH_PROFILE_COLUMNS
        )

    return SyncedView(
        keys.manager_course_selections_key(pack_id),
        fetch,
        store,
        watches=[Watch(COURSE_SELECTIONS_TABLE, pack_filter)],
        loader=loader,
        name=f"course-selections-{pack_id}",
    )


def exchange_selections_view(
    store: RecordStore, pack_id: str | int, loader: CacheLoader | None = None
) -> SyncedView[list[Row]]:
    """Student selections for one exchange pack, as listed for a manager."""
    pack_filter = eq("elective_exchange_id", pack_id)

    async def fetch() -> list[Row]:
        return await store.select(
            EXCHANGE_SELECTIONS_TABLE, [pack_filter], SELECTION_WITH_PROFILE_COLUMNS
        )

    return SyncedView(
        keys.manager_exchange_selections_key(pack_id),
        fetch,
        store,
        watches=[Watch(EXCHANGE_SELECTIONS_TABLE, pack_filter)],
        loader=loader,
        name=f"exchange-selections-{pack_id}",
    )


def student_course_packs_view(
    store: RecordStore, group_id: str | int, loader: CacheLoader | None = None
) -> SyncedView[list[Row]]:
    """Course packs published to a student's group."""

    async def fetch() -> list[Row]:
        return await store.select(
            ELECTIVE_COURSES_TABLE, [eq("group_id", group_id), eq("status", "published")]
        )

    return SyncedView(
        keys.student_courses_key(group_id),
        fetch,
        store,
        watches=[Watch(ELECTIVE_COURSES_TABLE, eq("group_id", group_id))],
        refresh_flag=FORCE_REFRESH_STUDENT_COURSES,
        loader=loader,
        name=f"student-courses-{group_id}",
    )


def student_course_selection_view(
    store: RecordStore,
    group_id: str | int,
    pack_id: str | int,
    student_id: str | int,
    loader: CacheLoader | None = None,
) -> SyncedView[list[Row]]:
    """The current student's selection for one course pack."""

    async def fetch() -> list[Row]:
        return await store.select(
            COURSE_SELECTIONS_TABLE,
            [eq("elective_courses_id", pack_id), eq("student_id", student_id)],
        )

    return SyncedView(
        keys.student_course_selection_key(group_id, pack_id),
        fetch,
        store,
        watches=[Watch(COURSE_SELECTIONS_TABLE, eq("student_id", student_id))],
        refresh_flag=FORCE_REFRESH_STUDENT_COURSES,
        loader=loader,
        name=f"student-course-selection-{group_id}-{pack_id}",
    )


def exchange_packs_view(
    store: RecordStore, loader: CacheLoader | None = None
) -> SyncedView[list[Row]]:
    """All exchange packs, as listed on the admin and manager pages."""

    async def fetch() -> list[Row]:
        return await store.select(ELECTIVE_EXCHANGE_TABLE)

    return SyncedView(
        keys.ADMIN_EXCHANGE_PROGRAMS_KEY,
        fetch,
        store,
        watches=[Watch(ELECTIVE_EXCHANGE_TABLE)],
        refresh_flag=FORCE_REFRESH_EXCHANGE_LIST,
        loader=loader,
        name="exchange-packs",
    )


def groups_view(
    store: RecordStore, loader: CacheLoader | None = None
) -> SyncedView[list[Row]]:
    """All student groups on the admin page."""

    async def fetch() -> list[Row]:
        return await store.select(GROUPS_TABLE)

    return SyncedView(
        keys.ADMIN_GROUPS_KEY,
        fetch,
        store,
        watches=[Watch(GROUPS_TABLE)],
        loader=loader,
        name="groups",
    )


async def set_selection_status(
    view: SyncedView[list[Row]],
    table: str,
    selection_id: Any,
    status: SelectionStatus,
    invalidate: list[str] | None = None,
) -> list[Row]:
    """Approve or reject one selection and reflect it in ``view``.

    Returns:
        The updated rows reported by the Record Store
    """
    return await view.mutate(
        lambda: view.store.update(table, [eq("id", selection_id)], {"status": status.value}),
        lambda rows, _: map_record(rows, selection_id, status=status.value),
        invalidate=invalidate,
    )


async def approve_selection(
    view: SyncedView[list[Row]], table: str, selection_id: Any
) -> list[Row]:
    return await set_selection_status(view, table, selection_id, SelectionStatus.APPROVED)


async def reject_selection(
    view: SyncedView[list[Row]], table: str, selection_id: Any
) -> list[Row]:
    return await set_selection_status(view, table, selection_id, SelectionStatus.REJECTED)


async def create_record(
    view: SyncedView[list[Row]],
    table: str,
    payload: Row,
    invalidate: list[str] | None = None,
) -> list[Row]:
    """Insert a row and append what the Record Store returned to ``view``."""
    return await view.mutate(
        lambda: view.store.insert(table, payload),
        append_records,
        invalidate=invalidate,
    )


async def update_record(
    view: SyncedView[list[Row]],
    table: str,
    record_id: Any,
    changes: Row,
    invalidate: list[str] | None = None,
) -> list[Row]:
    """Update one row by id and apply the same changes to ``view``."""
    return await view.mutate(
        lambda: view.store.update(table, [eq("id", record_id)], changes),
        lambda rows, _: map_record(rows, record_id, **changes),
        invalidate=invalidate,
    )


async def delete_record(
    view: SyncedView[list[Row]],
    table: str,
    record_id: Any,
    invalidate: list[str] | None = None,
) -> list[Row]:
    """Delete one row by id and drop it from ``view``."""
    return await view.mutate(
        lambda: view.store.delete(table, [eq("id", record_id)]),
        lambda rows, _: drop_record(rows, record_id),
        invalidate=invalidate,
    )


async def delete_group(view: SyncedView[list[Row]], group_id: Any) -> list[Row]:
    """Delete a group; the dashboard statistics count groups too."""
    return await delete_record(
        view,
        GROUPS_TABLE,
        group_id,
        invalidate=[keys.ADMIN_GROUPS_KEY, keys.ADMIN_DASHBOARD_STATS_KEY],
    )
