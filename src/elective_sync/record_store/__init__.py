# SPDX-License-Identifier: MIT
"""Record Store adapters.

- RecordStore: the interface the cache-and-sync layer consumes
- InMemoryRecordStore: in-process tables for tests and local runs
- SupabaseRecordStore: hosted Postgres REST API with realtime subscriptions
"""

from .filters import Filter, eq, matches_all
from .memory import InMemoryRecordStore
from .protocols import ChangeHandler, RecordStore, Row, SubscriptionHandle
from .realtime import RealtimeClient
from .supabase_rest import SupabaseRecordStore


__all__ = [
    "ChangeHandler",
    "Filter",
    "InMemoryRecordStore",
    "RealtimeClient",
    "RecordStore",
    "Row",
    "SubscriptionHandle",
    "SupabaseRecordStore",
    "eq",
    "matches_all",
]
