# SPDX-License-Identifier: MIT
"""One-shot force-refresh flags.

A view that changes server state sets a flag before navigating away; the
next load for that list type consumes the flag and bypasses the cache once.
"""

from ..constants import FORCE_REFRESH_FLAG_VALUE
from ..exceptions import CacheMediumError
from ..logging_config import get_detail_logger
from .storage import KeyValueStorage


detail_logger = get_detail_logger()


class RefreshFlags:
    """Session-scoped force-refresh sentinels."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage

    def set_flag(self, name: str) -> None:
        """Raise the flag ``name``."""
        try:
            self.storage.set_item(name, FORCE_REFRESH_FLAG_VALUE)
        except CacheMediumError as e:
            detail_logger.warning(f"Error setting force refresh flag ({name}): {e}")
            return
        detail_logger.debug(f"Set force refresh flag '{name}'")

    def is_set(self, name: str) -> bool:
        """Check the flag without clearing it."""
        try:
            return self.storage.get_item(name) == FORCE_REFRESH_FLAG_VALUE
        except CacheMediumError as e:
            detail_logger.warning(f"Error getting force refresh flag ({name}): {e}")
            return False

    def clear(self, name: str) -> None:
        """Lower the flag ``name``."""
        try:
            self.storage.remove_item(name)
        except CacheMediumError as e:
            detail_logger.warning(f"Error clearing force refresh flag ({name}): {e}")

    def consume(self, name: str) -> bool:
        """Return True if the flag was set, clearing it.

        A flag is honored exactly once: a second call returns False until
        the flag is set again.
        """
        if not self.is_set(name):
            return False
        self.clear(name)
        detail_logger.debug(f"Consumed force refresh flag '{name}'")
        return True
