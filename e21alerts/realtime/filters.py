"""Row filter expressions in ``column=op.value`` form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from e21alerts.realtime.exceptions import RowFilterError

_SUPPORTED_OPS = frozenset({"eq", "neq", "lt", "lte", "gt", "gte", "in"})


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class RowFilter:
    """Parsed row filter, e.g. ``org_id=eq.7f3a``."""

    column: str
    op: str
    value: str

    def __str__(self) -> str:
        return f"{self.column}={self.op}.{self.value}"

    def matches(self, row: dict[str, Any]) -> bool:
        if self.column not in row:
            return False
        actual = row[self.column]
        if self.op == "in":
            options = [v.strip() for v in self.value.strip("()").split(",")]
            return _as_text(actual) in options
        if self.op == "eq":
            return _as_text(actual) == self.value
        if self.op == "neq":
            return _as_text(actual) != self.value
        try:
            left, right = float(actual), float(self.value)
        except (TypeError, ValueError):
            left, right = str(actual), self.value  # type: ignore[assignment]
        if self.op == "lt":
            return left < right
        if self.op == "lte":
            return left <= right
        if self.op == "gt":
            return left > right
        return left >= right


def parse_row_filter(expr: str | None) -> RowFilter | None:
    """Parse ``column=op.value``; returns None for an empty expression.

    Raises:
        RowFilterError: if the expression is malformed or the operator
            is not supported.
    """
    if expr is None or not expr.strip():
        return None
    column, sep, rest = expr.partition("=")
    op, dot, value = rest.partition(".")
    if not sep or not dot or not column.strip():
        raise RowFilterError(f"Malformed row filter: {expr!r}")
    if op not in _SUPPORTED_OPS:
        raise RowFilterError(f"Unsupported row filter operator {op!r} in {expr!r}")
    return RowFilter(column=column.strip(), op=op, value=value)
