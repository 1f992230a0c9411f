"""SystemMetrics — dashboard counters derived from alerts and escalations."""

from __future__ import annotations

from collections.abc import Iterable

from e21alerts.core.types import (
    Alert,
    AlertCategory,
    EscalationExecution,
    EscalationStatus,
    Severity,
    SystemMetrics,
)

BASE_SYSTEM_HEALTH = 95.0
HEALTH_PENALTY_PER_ALERT = 2.0
BASE_COMPLIANCE_SCORE = 92.0
COMPLIANCE_PENALTY_PER_CRITICAL = 3.0


def compute_system_metrics(
    alerts: Iterable[Alert],
    escalations: Iterable[EscalationExecution] = (),
) -> SystemMetrics:
    """Recompute dashboard counters from the current collections.

    - active incidents / KRI breaches: unacknowledged alerts per category
    - pending approvals: escalations still active
    - system health: 95 minus 2 per unacknowledged alert
    - compliance score: 92 minus 3 per critical alert
    Scores are floored at zero.
    """
    alert_list = list(alerts)
    open_alerts = [a for a in alert_list if not a.acknowledged]

    active_incidents = sum(1 for a in open_alerts if a.category == AlertCategory.INCIDENT)
    kri_breaches = sum(1 for a in open_alerts if a.category == AlertCategory.KRI_BREACH)
    critical = sum(1 for a in alert_list if a.severity == Severity.CRITICAL)
    pending = sum(1 for e in escalations if e.status == EscalationStatus.ACTIVE)

    return SystemMetrics(
        active_incidents=active_incidents,
        kri_breaches=kri_breaches,
        pending_approvals=pending,
        system_health=max(0.0, BASE_SYSTEM_HEALTH - HEALTH_PENALTY_PER_ALERT * len(open_alerts)),
        compliance_score=max(
            0.0, BASE_COMPLIANCE_SCORE - COMPLIANCE_PENALTY_PER_CRITICAL * critical,
        ),
    )
