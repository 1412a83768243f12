# SPDX-License-Identifier: MIT
"""Tests for the exception hierarchy."""

from elective_sync.exceptions import (
    CacheMediumError,
    FetchFailedError,
    MutationFailedError,
    RecordStoreError,
    RecordStoreTimeoutError,
)


class TestRecordStoreErrors:
    """Test cases for Record Store exceptions."""

    def test_error_carries_code_and_table(self):
        """Test the error attributes."""
        error = FetchFailedError("permission denied", code="42501", table="groups")

        assert str(error) == "permission denied"
        assert error.message == "permission denied"
        assert error.code == "42501"
        assert error.table == "groups"

    def test_to_dict(self):
        """Test the code/message form."""
        error = MutationFailedError("duplicate key value", code="23505")

        assert error.to_dict() == {"code": "23505", "message": "duplicate key value"}

    def test_hierarchy(self):
        """Test the inheritance relationships."""
        assert issubclass(FetchFailedError, RecordStoreError)
        assert issubclass(MutationFailedError, RecordStoreError)
        assert issubclass(RecordStoreTimeoutError, FetchFailedError)
        assert not issubclass(CacheMediumError, RecordStoreError)

    def test_timeout_message(self):
        """Test the timeout error message and code."""
        error = RecordStoreTimeoutError(timeout=30.0, table="groups")

        assert error.message == "Record Store request timed out after 30.0s"
        assert error.code == "timeout"
        assert error.timeout == 30.0

    def test_timeout_without_duration(self):
        """Test the default timeout message."""
        assert RecordStoreTimeoutError().message == "Record Store request timed out"
