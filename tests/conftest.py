# SPDX-License-Identifier: MIT
"""Pytest configuration and shared fixtures."""

from datetime import timedelta

import pytest

from elective_sync.cache import (
    CacheLoader,
    LocalCache,
    MemoryStorage,
    RefreshFlags,
    reset_local_cache,
)
from elective_sync.config import reset_config_manager
from elective_sync.record_store import InMemoryRecordStore


# 2024-03-05T10:00:00Z
START_MS = 1_709_632_800_000


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, now_ms: int = START_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, *, minutes: float = 0, seconds: float = 0, ms: int = 0) -> None:
        self.now_ms += int(minutes * 60_000 + seconds * 1000) + ms


@pytest.fixture(scope="function", autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """
    Automatically isolate every test from the real cache and config.

    This fixture:
    1. Runs the test from a temporary working directory, so the default
       .elective-sync/ cache file and config lookups land there
    2. Clears environment overrides
    3. Resets the global config manager, cache and flags instances
    """
    monkeypatch.chdir(tmp_path)
    for name in (
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "ELECTIVE_SYNC_CACHE_TTL_MINUTES",
        "ELECTIVE_SYNC_CACHE_BACKEND",
        "ELECTIVE_SYNC_CACHE_DB_PATH",
    ):
        monkeypatch.delenv(name, raising=False)

    reset_config_manager()
    reset_local_cache()
    yield tmp_path
    reset_config_manager()
    reset_local_cache()


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def storage():
    """Empty in-memory storage medium."""
    return MemoryStorage()


@pytest.fixture
def local_cache(storage, clock):
    """Local cache with the default 60 minute TTL and a fake clock."""
    return LocalCache(storage, ttl=timedelta(minutes=60), clock=clock)


@pytest.fixture
def refresh_flags():
    """Force-refresh flags over their own in-memory medium."""
    return RefreshFlags(MemoryStorage())


@pytest.fixture
def loader(local_cache, refresh_flags):
    """Cache loader over the fake-clock cache."""
    return CacheLoader(local_cache, refresh_flags)


@pytest.fixture
def store():
    """Empty in-memory Record Store."""
    return InMemoryRecordStore()


@pytest.fixture
def selection_rows():
    """Course selections for pack 42 and one for another pack."""
    return [
        {
            "id": 1,
            "elective_courses_id": 42,
            "student_id": "s-1",
            "status": "pending",
            "created_at": "2024-03-05T10:00:00Z",
            "profiles": {"full_name": "Anna Petrova", "email": "anna@example.edu"},
        },
        {
            "id": 2,
            "elective_courses_id": 42,
            "student_id": "s-2",
            "status": "approved",
            "created_at": "2024-03-06T12:30:00Z",
            "profiles": {"full_name": "Ivan Smirnov", "email": "ivan@example.edu"},
        },
        {
            "id": 3,
            "elective_courses_id": 7,
            "student_id": "s-3",
            "status": "pending",
            "created_at": "2024-03-07T08:15:00Z",
            "profiles": {"full_name": "Maria Ivanova", "email": "maria@example.edu"},
        },
    ]
