# SPDX-License-Identifier: MIT
"""Row filters shared by queries, mutations and realtime subscriptions."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


SUPPORTED_OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "in")


@dataclass(frozen=True)
class Filter:
    """A single ``column <op> value`` predicate in PostgREST notation."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if not self.column:
            raise ValueError("Filter column cannot be empty")
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def _rendered_value(self) -> str:
        if self.op == "in":
            return "(" + ",".join(str(v) for v in self.value) + ")"
        return str(self.value)

    def to_query_param(self) -> tuple[str, str]:
        """Render as a PostgREST query parameter, e.g. ``("id", "eq.5")``."""
        return self.column, f"{self.op}.{self._rendered_value()}"

    def __str__(self) -> str:
        return f"{self.column}={self.op}.{self._rendered_value()}"

    @classmethod
    def parse(cls, text: str) -> "Filter":
        """Parse ``column=op.value`` as used by realtime subscriptions.

        Raises:
            ValueError: If the text is not a valid filter
        """
        column, sep, rest = text.partition("=")
        op, dot, value = rest.partition(".")
        if not sep or not dot:
            raise ValueError(f"Invalid filter '{text}', expected column=op.value")
        if op == "in":
            items = value.strip("()")
            return cls(column.strip(), op, tuple(v for v in items.split(",") if v))
        return cls(column.strip(), op, value)

    def matches(self, row: dict[str, Any]) -> bool:
        """Evaluate the predicate against a row.

        Values are compared as strings for equality, since realtime filters
        carry every value as text, and numerically for ordering when both
        sides are numbers.
        """
        if self.column not in row:
            return False
        actual = row[self.column]

        if self.op == "eq":
            return str(actual) == str(self.value)
        if self.op == "neq":
            return str(actual) != str(self.value)
        if self.op == "in":
            return str(actual) in {str(v) for v in self.value}

        try:
            left: Any = float(actual)
            right: Any = float(self.value)
        except (TypeError, ValueError):
            left, right = str(actual), str(self.value)

        if self.op == "gt":
            return bool(left > right)
        if self.op == "gte":
            return bool(left >= right)
        if self.op == "lt":
            return bool(left < right)
        return bool(left <= right)


def eq(column: str, value: Any) -> Filter:
    """Shorthand for an equality filter."""
    return Filter(column, "eq", value)


def matches_all(row: dict[str, Any], filters: Iterable[Filter]) -> bool:
    """True if ``row`` satisfies every filter."""
    return all(f.matches(row) for f in filters)
