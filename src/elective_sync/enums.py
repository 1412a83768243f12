# SPDX-License-Identifier: MIT
"""Enums for elective-sync."""

from enum import Enum


class ChangeEvent(str, Enum):
    """Row-level change types delivered by realtime subscriptions."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ALL = "*"


class SelectionStatus(str, Enum):
    """Approval status of a student's selection."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StorageBackend(str, Enum):
    """Storage media available for the local cache."""

    SQLITE = "sqlite"
    MEMORY = "memory"
