"""Domain types for change events, alerts, deliveries and escalations."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class Severity(StrEnum):
    """Alert / breach severity as stored in the hosted tables."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AlertCategory(StrEnum):
    """Category of a user-visible alert."""

    INCIDENT = "incident"
    KRI_BREACH = "kri_breach"
    DEPENDENCY_FAILURE = "dependency_failure"
    COMPLIANCE_GAP = "compliance_gap"


class ChangeOperation(StrEnum):
    """Row-level mutation kind reported by the change stream."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EventFilter(StrEnum):
    """Which operations a subscription listens to."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ANY = "*"

    def matches(self, op: ChangeOperation) -> bool:
        return self is EventFilter.ANY or self.value == op.value


class SourceTable(StrEnum):
    """Hosted tables that feed the alert classifier."""

    INCIDENT_LOGS = "incident_logs"
    APPETITE_BREACH_LOGS = "appetite_breach_logs"
    DEPENDENCY_LOGS = "dependency_logs"


class Priority(StrEnum):
    """Delivery priority forwarded to the notification functions."""

    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DeliveryChannel(StrEnum):
    EMAIL = "email"
    SMS = "sms"


class ChannelOutcome(StrEnum):
    """Per-channel result of a dispatch call."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class EscalationStatus(StrEnum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


# ── Change stream ───────────────────────────────────────────────


class ChangeEvent(BaseModel):
    """A single row mutation delivered by the change stream."""

    table: str
    operation: ChangeOperation
    new: dict[str, Any] = Field(default_factory=dict)
    old: dict[str, Any] = Field(default_factory=dict)
    schema_name: str = "public"
    commit_timestamp: datetime | None = None

    @property
    def row(self) -> dict[str, Any]:
        """The row the event is about (old row for deletes)."""
        if self.operation == ChangeOperation.DELETE:
            return self.old
        return self.new


class IncidentRow(BaseModel):
    """Typed view of an ``incident_logs`` row."""

    table: SourceTable = SourceTable.INCIDENT_LOGS
    id: str
    org_id: str = ""
    title: str
    severity: str
    status: str = "open"
    reported_at: datetime | None = None


class BreachRow(BaseModel):
    """Typed view of an ``appetite_breach_logs`` row."""

    table: SourceTable = SourceTable.APPETITE_BREACH_LOGS
    id: str
    org_id: str = ""
    breach_severity: Severity
    actual_value: float | None = None
    threshold_value: float | None = None
    variance_percentage: float | None = None
    business_impact: str | None = None
    breach_date: datetime | None = None
    resolution_status: str = "open"


class DependencyRow(BaseModel):
    """Typed view of a ``dependency_logs`` row."""

    table: SourceTable = SourceTable.DEPENDENCY_LOGS
    id: str
    org_id: str = ""
    tolerance_breached: bool = False
    impact_level: str | None = None
    notes: str | None = None
    detected_at: datetime | None = None


SourceRow = IncidentRow | BreachRow | DependencyRow


# ── Alerts ──────────────────────────────────────────────────────


class Alert(BaseModel):
    """Normalised alert derived from a qualifying change event."""

    id: str
    category: AlertCategory
    severity: Severity
    title: str
    description: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    acknowledged: bool = False
    source_module: str = ""
    org_id: str = ""
    details: dict[str, str] = Field(default_factory=dict)


# ── Notifications ───────────────────────────────────────────────


class NotificationDeliveryConfig(BaseModel):
    """Channel switches and priority bound to a single dispatch call."""

    email_enabled: bool = True
    sms_enabled: bool = False
    priority: Priority = Priority.NORMAL
    escalation_delay: int = 15  # minutes


class NotificationRecipient(BaseModel):
    name: str
    role: str = ""
    email: str | None = None
    phone: str | None = None


class BreachNotification(BaseModel):
    """Payload describing a tolerance breach to notify about."""

    org_id: str
    breach_id: str
    severity: Severity
    actual_value: float | None = None
    threshold_value: float | None = None
    variance_percentage: float | None = None
    business_function_name: str | None = None
    description: str = ""
    detected_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_alert(cls, alert: Alert) -> BreachNotification:
        """Build a breach payload from an alert's detail fields."""
        return cls(
            org_id=alert.org_id,
            breach_id=alert.id,
            severity=alert.severity,
            actual_value=_as_float(alert.details.get("actual_value")),
            threshold_value=_as_float(alert.details.get("threshold_value")),
            variance_percentage=_as_float(alert.details.get("variance_percentage")),
            business_function_name=alert.details.get("business_function_name"),
            description=alert.description,
            detected_at=alert.timestamp,
        )


def _as_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


class DispatchResult(BaseModel):
    """Outcome of one dispatch call, per delivery channel."""

    breach_id: str
    outcomes: dict[DeliveryChannel, ChannelOutcome] = Field(default_factory=dict)
    error: str | None = None

    @property
    def success(self) -> bool:
        """True unless dispatch was aborted before any channel ran."""
        return self.error is None

    @property
    def partial_failure(self) -> bool:
        values = list(self.outcomes.values())
        return ChannelOutcome.FAILED in values and ChannelOutcome.SENT in values

    def outcome(self, channel: DeliveryChannel) -> ChannelOutcome:
        return self.outcomes.get(channel, ChannelOutcome.SKIPPED)


# ── Escalations ─────────────────────────────────────────────────


class EscalationExecution(BaseModel):
    """A tracked escalation of one alert to a responsible party."""

    id: str
    org_id: str
    alert_id: str
    alert_title: str
    escalation_level: int = Field(ge=1)
    escalation_reason: str = ""
    assigned_to: str | None = None
    assigned_to_name: str | None = None
    status: EscalationStatus = EscalationStatus.ACTIVE
    escalated_at: datetime = Field(default_factory=utcnow)
    resolved_at: datetime | None = None


class EscalationMetrics(BaseModel):
    """Aggregates over an organisation's escalation executions."""

    total: int = 0
    active: int = 0
    resolved_today: int = 0
    avg_resolution_hours: float = 0.0
    by_level: dict[int, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)


class SystemMetrics(BaseModel):
    """Dashboard counters, always recomputed from alerts and escalations."""

    active_incidents: int = 0
    kri_breaches: int = 0
    pending_approvals: int = 0
    system_health: float = 95.0
    compliance_score: float = 92.0
