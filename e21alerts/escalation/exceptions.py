"""Escalation tracking exceptions."""

from __future__ import annotations


class EscalationError(Exception):
    """Base exception for escalation tracking errors."""

    code: str | None = "escalation_error"


class EscalationNotFoundError(EscalationError):
    """No escalation execution exists with the given id."""

    code = "escalation_not_found"


class EscalationAlreadyResolvedError(EscalationError):
    """The escalation has already been resolved."""

    code = "escalation_already_resolved"


class EscalationClosedError(EscalationError):
    """The escalation was cancelled and can no longer change state."""

    code = "escalation_closed"
