"""Exception hierarchy for change-stream subscriptions."""

from __future__ import annotations


class RealtimeError(Exception):
    """Base exception for all change-stream errors."""

    code: str | None = "realtime_error"


class RealtimeConnectionError(RealtimeError):
    """Failed to open or keep the change-stream transport."""

    code = "realtime_connection_error"


class RealtimeSubscriptionError(RealtimeError):
    """The server rejected or timed out a channel join."""

    code = "realtime_subscription_error"


class RowFilterError(RealtimeError, ValueError):
    """A row filter expression could not be parsed."""

    code = "invalid_row_filter"
