# SPDX-License-Identifier: MIT
"""Tests for the in-memory Record Store."""

import pytest

from elective_sync.enums import ChangeEvent
from elective_sync.exceptions import FetchFailedError, MutationFailedError
from elective_sync.record_store import InMemoryRecordStore, RecordStore, eq


class TestInMemoryRecordStoreQueries:
    """Test cases for reads and writes."""

    def test_satisfies_protocol(self):
        """Test the runtime protocol check."""
        assert isinstance(InMemoryRecordStore(), RecordStore)

    @pytest.mark.asyncio
    async def test_select_with_filters(self, store, selection_rows):
        """Test filtered selects."""
        store.seed("course_selections", selection_rows)

        rows = await store.select("course_selections", [eq("elective_courses_id", 42)])

        assert [row["id"] for row in rows] == [1, 2]

    @pytest.mark.asyncio
    async def test_select_returns_copies(self, store, selection_rows):
        """Test that callers cannot mutate stored rows."""
        store.seed("course_selections", selection_rows)

        rows = await store.select("course_selections")
        rows[0]["status"] = "rejected"

        assert store.tables["course_selections"][0]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_select_projects_columns(self, store, selection_rows):
        """Test column projection."""
        store.seed("course_selections", selection_rows)

        rows = await store.select("course_selections", [eq("id", 1)], "id, status")

        assert rows == [{"id": 1, "status": "pending"}]

    @pytest.mark.asyncio
    async def test_select_with_embedded_resources_returns_full_rows(
        self, store, selection_rows
    ):
        """Test that a star select with embeds keeps every column."""
        store.seed("course_selections", selection_rows)

        rows = await store.select(
            "course_selections", [eq("id", 1)], "*, profiles!student_id(full_name)"
        )

        assert rows[0]["profiles"]["full_name"] == "Anna Petrova"

    @pytest.mark.asyncio
    async def test_select_unknown_table(self, store):
        """Test that a missing table reads as empty."""
        assert await store.select("groups") == []

    @pytest.mark.asyncio
    async def test_insert_assigns_ids(self, store):
        """Test that inserts get ids when none are given."""
        inserted = await store.insert("groups", [{"name": "A"}, {"name": "B"}])

        assert [row["name"] for row in inserted] == ["A", "B"]
        assert inserted[0]["id"] != inserted[1]["id"]
        assert len(await store.select("groups")) == 2

    @pytest.mark.asyncio
    async def test_assigned_ids_follow_seeded_rows(self, store, selection_rows):
        """Test that generated ids do not collide with seeded ones."""
        store.seed("course_selections", selection_rows)

        inserted = await store.insert("course_selections", {"status": "pending"})

        assert inserted[0]["id"] == 4

    @pytest.mark.asyncio
    async def test_update_returns_updated_rows(self, store, selection_rows):
        """Test updates by filter."""
        store.seed("course_selections", selection_rows)

        updated = await store.update("course_selections", [eq("id", 1)], {"status": "approved"})

        assert updated == [{**selection_rows[0], "status": "approved"}]

    @pytest.mark.asyncio
    async def test_delete_returns_removed_rows(self, store, selection_rows):
        """Test deletes by filter."""
        store.seed("course_selections", selection_rows)

        removed = await store.delete("course_selections", [eq("elective_courses_id", 7)])

        assert [row["id"] for row in removed] == [3]
        assert len(store.tables["course_selections"]) == 2

    @pytest.mark.asyncio
    async def test_calls_are_recorded(self, store):
        """Test the call log used by view tests."""
        await store.select("groups", [eq("id", 1)])

        assert store.calls == [("select", "groups", (eq("id", 1),))]

    @pytest.mark.asyncio
    async def test_fail_next_select(self, store):
        """Test injected read failures."""
        store.fail_next("select")

        with pytest.raises(FetchFailedError, match="Injected select failure"):
            await store.select("groups")

        assert await store.select("groups") == []

    @pytest.mark.asyncio
    async def test_fail_next_mutation(self, store):
        """Test injected write failures leave the table unchanged."""
        store.fail_next("insert")

        with pytest.raises(MutationFailedError):
            await store.insert("groups", {"name": "A"})

        assert store.tables.get("groups") is None


class TestInMemoryRecordStoreNotifications:
    """Test cases for change notifications."""

    @pytest.mark.asyncio
    async def test_matching_subscription_is_notified(self, store, selection_rows):
        """Test that a filtered subscription sees matching changes only."""
        store.seed("course_selections", selection_rows)
        received = []

        async def on_change(notification):
            received.append(notification)

        await store.subscribe("course_selections", eq("elective_courses_id", 42), on_change)
        await store.update("course_selections", [eq("id", 1)], {"status": "approved"})
        await store.update("course_selections", [eq("id", 3)], {"status": "approved"})
        await store.drain()

        assert len(received) == 1
        assert received[0].event == ChangeEvent.UPDATE
        assert received[0].record["status"] == "approved"
        assert received[0].old_record["status"] == "pending"

    @pytest.mark.asyncio
    async def test_delete_notification_carries_only_id(self, store, selection_rows):
        """Test that deletes do not carry the deleted row's content."""
        store.seed("course_selections", selection_rows)
        received = []

        async def on_change(notification):
            received.append(notification)

        await store.subscribe("course_selections", eq("elective_courses_id", 42), on_change)
        await store.delete("course_selections", [eq("id", 2)])
        await store.drain()

        assert received[0].event == ChangeEvent.DELETE
        assert received[0].record == {}
        assert received[0].old_record == {"id": 2}

    @pytest.mark.asyncio
    async def test_other_tables_are_not_notified(self, store):
        """Test table scoping."""
        received = []

        async def on_change(notification):
            received.append(notification)

        await store.subscribe("groups", None, on_change)
        await store.insert("courses", {"name": "Algebra"})
        await store.drain()

        assert received == []

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_notifications(self, store):
        """Test that released handles receive nothing."""
        received = []

        async def on_change(notification):
            received.append(notification)

        handle = await store.subscribe("groups", None, on_change)
        await store.unsubscribe(handle)
        await store.insert("groups", {"name": "A"})
        await store.drain()

        assert received == []
        assert store.active_subscriptions == []

    @pytest.mark.asyncio
    async def test_notifications_are_delivered_after_the_call_returns(self, store):
        """Test that handlers run asynchronously."""
        received = []

        async def on_change(notification):
            received.append(notification)

        await store.subscribe("groups", None, on_change)
        await store.insert("groups", {"name": "A"})

        assert received == []
        await store.drain()
        assert len(received) == 1
