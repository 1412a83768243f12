# SPDX-License-Identifier: MIT
"""Core data models for elective-sync."""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .enums import ChangeEvent


T = TypeVar("T")


class StoredEntry(BaseModel):
    """Persisted form of a cache entry: ``{"data": ..., "timestamp": epoch-ms}``.

    This is the on-disk contract shared by every process that opens the same
    storage medium, so field names must not change.
    """

    data: Any = Field(..., description="Cached payload")
    timestamp: int = Field(..., ge=0, description="Store time in epoch milliseconds")


class CacheEntry(BaseModel, Generic[T]):
    """A cache entry as seen by callers."""

    key: str = Field(..., description="Namespaced cache key")
    payload: T = Field(..., description="Cached payload")
    stored_at: int = Field(..., ge=0, description="Store time in epoch milliseconds")

    def age_ms(self, now_ms: int) -> int:
        """Milliseconds elapsed since the entry was stored."""
        return now_ms - self.stored_at


class ChangeNotification(BaseModel):
    """A row-level change pushed by the Record Store.

    ``record`` and ``old_record`` are informational only. Deletes usually
    carry nothing but the primary key in ``old_record``, so consumers must
    re-fetch rather than patch from them.
    """

    model_config = ConfigDict(populate_by_name=True)

    table: str = Field(..., description="Table the change happened in")
    schema_name: str = Field("public", alias="schema", description="Database schema")
    event: ChangeEvent = Field(..., description="INSERT, UPDATE or DELETE")
    record: dict[str, Any] = Field(default_factory=dict, description="New row")
    old_record: dict[str, Any] = Field(default_factory=dict, description="Old row")
    commit_timestamp: str | None = Field(None, description="Commit time (ISO 8601)")

    @classmethod
    def from_realtime_payload(cls, data: dict[str, Any]) -> "ChangeNotification":
        """Build a notification from a realtime ``postgres_changes`` data block.

        Args:
            data: The ``payload.data`` object of a realtime message

        Returns:
            Parsed notification
        """
        return cls(
            table=data["table"],
            schema=data.get("schema", "public"),
            event=ChangeEvent(data.get("type") or data.get("eventType")),
            record=data.get("record") or {},
            old_record=data.get("old_record") or {},
            commit_timestamp=data.get("commit_timestamp"),
        )


class Loading(BaseModel):
    """View is waiting for its first result."""

    status: Literal["loading"] = "loading"


class Failed(BaseModel):
    """View load failed; ``detail`` is user-displayable."""

    status: Literal["error"] = "error"
    detail: str
    code: str | None = None


class Ready(BaseModel, Generic[T]):
    """View holds data."""

    status: Literal["ready"] = "ready"
    data: T


ViewState = Loading | Failed | Ready
