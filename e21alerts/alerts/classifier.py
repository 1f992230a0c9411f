"""Pure functions that turn change events into user-visible alerts.

Qualification rules per source table:

- ``incident_logs``: only high / critical incidents.
- ``appetite_breach_logs``: every inserted breach.
- ``dependency_logs``: only rows flagged ``tolerance_breached``; critical
  impact yields a critical alert, anything else a high one.

Malformed rows never raise; missing fields fall back to fixed defaults.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from e21alerts.core.types import (
    Alert,
    AlertCategory,
    BreachRow,
    ChangeEvent,
    ChangeOperation,
    DependencyRow,
    IncidentRow,
    Severity,
    SourceRow,
    SourceTable,
    utcnow,
)

FALLBACK_INCIDENT_TITLE = "Untitled incident"
FALLBACK_BUSINESS_IMPACT = "Business impact not specified"
FALLBACK_DEPENDENCY_NOTES = "Critical dependency has failed"
FALLBACK_VALUE = "n/a"

_ALERTING_INCIDENT_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})

_SOURCE_MODULES: dict[SourceTable, str] = {
    SourceTable.INCIDENT_LOGS: "incidents",
    SourceTable.APPETITE_BREACH_LOGS: "controls",
    SourceTable.DEPENDENCY_LOGS: "dependencies",
}

_CATEGORIES: dict[SourceTable, AlertCategory] = {
    SourceTable.INCIDENT_LOGS: AlertCategory.INCIDENT,
    SourceTable.APPETITE_BREACH_LOGS: AlertCategory.KRI_BREACH,
    SourceTable.DEPENDENCY_LOGS: AlertCategory.DEPENDENCY_FAILURE,
}


# ── Field helpers ───────────────────────────────────────────────


def _text(row: dict[str, Any], key: str) -> str | None:
    value = row.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(row: dict[str, Any], key: str) -> float | None:
    value = row.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _timestamp(row: dict[str, Any], key: str) -> datetime | None:
    value = row.get(key)
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _severity(value: str | None) -> Severity | None:
    if value is None:
        return None
    try:
        return Severity(value.lower())
    except ValueError:
        return None


def _fmt(value: float | None) -> str:
    if value is None or not math.isfinite(value):
        return FALLBACK_VALUE
    if value == int(value):
        return str(int(value))
    return f"{value:g}"


# ── Row variants ────────────────────────────────────────────────


def parse_incident(row: dict[str, Any]) -> IncidentRow:
    return IncidentRow(
        id=_text(row, "id") or "",
        org_id=_text(row, "org_id") or "",
        title=_text(row, "title") or FALLBACK_INCIDENT_TITLE,
        severity=(_text(row, "severity") or "").lower(),
        status=_text(row, "status") or "open",
        reported_at=_timestamp(row, "reported_at") or _timestamp(row, "created_at"),
    )


def parse_breach(row: dict[str, Any]) -> BreachRow:
    return BreachRow(
        id=_text(row, "id") or "",
        org_id=_text(row, "org_id") or "",
        breach_severity=_severity(_text(row, "breach_severity")) or Severity.MEDIUM,
        actual_value=_number(row, "actual_value"),
        threshold_value=_number(row, "threshold_value"),
        variance_percentage=_number(row, "variance_percentage"),
        business_impact=_text(row, "business_impact"),
        breach_date=_timestamp(row, "breach_date") or _timestamp(row, "created_at"),
        resolution_status=_text(row, "resolution_status") or "open",
    )


def parse_dependency(row: dict[str, Any]) -> DependencyRow:
    return DependencyRow(
        id=_text(row, "id") or "",
        org_id=_text(row, "org_id") or "",
        tolerance_breached=row.get("tolerance_breached") is True,
        impact_level=(_text(row, "impact_level") or "").lower() or None,
        notes=_text(row, "notes"),
        detected_at=_timestamp(row, "detected_at") or _timestamp(row, "created_at"),
    )


_PARSERS: dict[SourceTable, Callable[[dict[str, Any]], SourceRow]] = {
    SourceTable.INCIDENT_LOGS: parse_incident,
    SourceTable.APPETITE_BREACH_LOGS: parse_breach,
    SourceTable.DEPENDENCY_LOGS: parse_dependency,
}


def parse_row(table: str, row: dict[str, Any]) -> SourceRow | None:
    """Parse *row* into the typed variant for *table*, or None if unknown."""
    try:
        source = SourceTable(table)
    except ValueError:
        return None
    return _PARSERS[source](row)


# ── Classification rules ────────────────────────────────────────


def _incident_alert(row: IncidentRow, fallback_ts: datetime, live: bool) -> Alert | None:
    severity = _severity(row.severity)
    if severity not in _ALERTING_INCIDENT_SEVERITIES:
        return None
    title = f"New {severity.value} incident" if live else f"{severity.value} incident"
    return Alert(
        id=row.id,
        category=_CATEGORIES[row.table],
        severity=severity,
        title=title,
        description=row.title,
        timestamp=row.reported_at or fallback_ts,
        source_module=_SOURCE_MODULES[row.table],
        org_id=row.org_id,
        details={"status": row.status},
    )


def _breach_alert(row: BreachRow, fallback_ts: datetime, live: bool) -> Alert:
    return Alert(
        id=row.id,
        category=_CATEGORIES[row.table],
        severity=row.breach_severity,
        title="KRI Appetite Breach",
        description=(
            f"Threshold breached: {_fmt(row.actual_value)} vs {_fmt(row.threshold_value)}"
        ),
        timestamp=row.breach_date or fallback_ts,
        source_module=_SOURCE_MODULES[row.table],
        org_id=row.org_id,
        details={
            "actual_value": _fmt(row.actual_value),
            "threshold_value": _fmt(row.threshold_value),
            "variance_percentage": _fmt(row.variance_percentage),
            "business_impact": row.business_impact or FALLBACK_BUSINESS_IMPACT,
        },
    )


def _dependency_alert(row: DependencyRow, fallback_ts: datetime, live: bool) -> Alert | None:
    if not row.tolerance_breached:
        return None
    severity = Severity.CRITICAL if row.impact_level == "critical" else Severity.HIGH
    return Alert(
        id=row.id,
        category=_CATEGORIES[row.table],
        severity=severity,
        title="Dependency Failure",
        description=row.notes or FALLBACK_DEPENDENCY_NOTES,
        timestamp=row.detected_at or fallback_ts,
        source_module=_SOURCE_MODULES[row.table],
        org_id=row.org_id,
        details={"impact_level": row.impact_level or FALLBACK_VALUE},
    )


def classify_compliance_gap(row: dict[str, Any]) -> Alert | None:
    """Compliance-gap alerts: not yet wired.

    No change source produces compliance gaps, so this rule is not
    registered with :func:`classify`.
    """
    raise NotImplementedError("compliance_gap alerts are not yet wired to a change source")


def classify_row(
    table: str,
    row: dict[str, Any],
    *,
    live: bool = True,
    fallback_ts: datetime | None = None,
) -> Alert | None:
    """Apply the qualification rule for *table* to a raw row.

    Args:
        table: Source table name.
        row: Raw row mapping.
        live: True for rows arriving on the change stream (titles are
            prefixed "New"), False for rows loaded on start-up.
        fallback_ts: Timestamp used when the row has none.
    """
    parsed = parse_row(table, row)
    ts = fallback_ts or utcnow()
    if isinstance(parsed, IncidentRow):
        return _incident_alert(parsed, ts, live)
    if isinstance(parsed, BreachRow):
        return _breach_alert(parsed, ts, live)
    if isinstance(parsed, DependencyRow):
        return _dependency_alert(parsed, ts, live)
    return None


def classify(event: ChangeEvent) -> Alert | None:
    """Return the alert for *event*, or None if it does not qualify.

    Only inserts are classified.
    """
    if event.operation != ChangeOperation.INSERT:
        return None
    return classify_row(
        event.table,
        event.new,
        live=True,
        fallback_ts=event.commit_timestamp,
    )
