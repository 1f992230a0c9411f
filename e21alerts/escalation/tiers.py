"""Escalation level → organisational tier mapping (informational only)."""

from __future__ import annotations

from enum import StrEnum

from e21alerts.core.types import Severity


class EscalationTier(StrEnum):
    OPERATIONAL = "operational"
    SENIOR_MANAGEMENT = "senior_management"
    BOARD_REGULATOR = "board_regulator"
    UNMAPPED = "unmapped"


_TIERS_BY_LEVEL: dict[int, EscalationTier] = {
    1: EscalationTier.OPERATIONAL,
    2: EscalationTier.SENIOR_MANAGEMENT,
    3: EscalationTier.BOARD_REGULATOR,
}

_DESCRIPTIONS: dict[EscalationTier, str] = {
    EscalationTier.OPERATIONAL: "Business unit manager",
    EscalationTier.SENIOR_MANAGEMENT: "Senior management / Chief Risk Officer",
    EscalationTier.BOARD_REGULATOR: "Board of directors / regulator",
    EscalationTier.UNMAPPED: "No tier defined for this level",
}

_LEVELS_BY_SEVERITY: dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


def tier_for_level(level: int) -> EscalationTier:
    """Tier for *level*; anything outside 1..3 is UNMAPPED."""
    return _TIERS_BY_LEVEL.get(level, EscalationTier.UNMAPPED)


def tier_description(tier: EscalationTier) -> str:
    return _DESCRIPTIONS[tier]


def level_for_severity(severity: Severity) -> int:
    return _LEVELS_BY_SEVERITY[severity]
