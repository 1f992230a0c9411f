"""Tests for row filter parsing and matching."""

from __future__ import annotations

import pytest

from e21alerts.realtime.exceptions import RowFilterError
from e21alerts.realtime.filters import RowFilter, parse_row_filter


class TestParse:
    def test_eq(self) -> None:
        f = parse_row_filter("org_id=eq.org-1")
        assert f == RowFilter(column="org_id", op="eq", value="org-1")
        assert str(f) == "org_id=eq.org-1"

    def test_value_may_contain_dots(self) -> None:
        f = parse_row_filter("actual_value=gt.1.5")
        assert f is not None
        assert f.value == "1.5"

    @pytest.mark.parametrize("expr", [None, "", "   "])
    def test_empty_is_none(self, expr: str | None) -> None:
        assert parse_row_filter(expr) is None

    @pytest.mark.parametrize("expr", ["org_id", "org_id=org-1", "=eq.x"])
    def test_malformed(self, expr: str) -> None:
        with pytest.raises(RowFilterError):
            parse_row_filter(expr)

    def test_unsupported_operator(self) -> None:
        with pytest.raises(RowFilterError, match="Unsupported"):
            parse_row_filter("title=like.outage")

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_row_filter("nonsense")


class TestMatches:
    def test_eq_compares_as_text(self) -> None:
        f = RowFilter("severity", "eq", "critical")
        assert f.matches({"severity": "critical"})
        assert not f.matches({"severity": "high"})

    def test_missing_column_never_matches(self) -> None:
        assert not RowFilter("org_id", "neq", "x").matches({})

    def test_in(self) -> None:
        f = RowFilter("status", "in", "(open, in_progress)")
        assert f.matches({"status": "in_progress"})
        assert not f.matches({"status": "closed"})

    def test_numeric_comparison(self) -> None:
        f = RowFilter("actual_value", "gte", "100")
        assert f.matches({"actual_value": 150})
        assert f.matches({"actual_value": "100"})
        assert not f.matches({"actual_value": 99.5})

    def test_string_fallback(self) -> None:
        f = RowFilter("detected_at", "lt", "2024-06-01")
        assert f.matches({"detected_at": "2024-05-31"})
        assert not f.matches({"detected_at": "2024-06-02"})

    def test_boolean_column(self) -> None:
        f = RowFilter("tolerance_breached", "eq", "true")
        assert f.matches({"tolerance_breached": True})
        assert not f.matches({"tolerance_breached": False})
