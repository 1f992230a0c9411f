"""Escalation tracking — executions, tiers and metrics."""

from e21alerts.escalation.exceptions import (
    EscalationAlreadyResolvedError,
    EscalationClosedError,
    EscalationError,
    EscalationNotFoundError,
)
from e21alerts.escalation.store import (
    EscalationStore,
    HostedEscalationStore,
    MemoryEscalationStore,
)
from e21alerts.escalation.tiers import (
    EscalationTier,
    level_for_severity,
    tier_description,
    tier_for_level,
)
from e21alerts.escalation.tracker import EscalationTracker

__all__ = [
    "EscalationAlreadyResolvedError",
    "EscalationClosedError",
    "EscalationError",
    "EscalationNotFoundError",
    "EscalationStore",
    "EscalationTier",
    "EscalationTracker",
    "HostedEscalationStore",
    "MemoryEscalationStore",
    "level_for_severity",
    "tier_description",
    "tier_for_level",
]
