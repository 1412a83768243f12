# SPDX-License-Identifier: MIT
"""Keeping views consistent with the Record Store.

- SyncedView: cache-first loads, confirm-then-apply mutations, realtime re-fetch
- SubscriptionScope: subscriptions released when a view unmounts
- pages: the portal's views built on SyncedView
"""

from . import pages
from .subscriptions import SubscriptionScope
from .view import SyncedView, Watch, append_records, drop_record, map_record


__all__ = [
    "SubscriptionScope",
    "SyncedView",
    "Watch",
    "append_records",
    "drop_record",
    "map_record",
    "pages",
]
