# SPDX-License-Identifier: MIT
"""Integration tests for elective-sync.

These tests mount views over the in-memory Record Store and the SQLite
storage medium together, exercising loads, mutations and realtime
re-fetches end to end. They make no network calls.
"""
