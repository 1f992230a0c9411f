"""Change-stream transports and per-table subscriptions."""

from e21alerts.realtime.exceptions import (
    RealtimeConnectionError,
    RealtimeError,
    RealtimeSubscriptionError,
    RowFilterError,
)
from e21alerts.realtime.filters import RowFilter, parse_row_filter
from e21alerts.realtime.phoenix import RealtimeChangeStream
from e21alerts.realtime.stream import ChangeStream, ChannelHandle, MemoryChangeStream
from e21alerts.realtime.subscription import SubscriptionState, TableSubscription

__all__ = [
    "ChangeStream",
    "ChannelHandle",
    "MemoryChangeStream",
    "RealtimeChangeStream",
    "RealtimeConnectionError",
    "RealtimeError",
    "RealtimeSubscriptionError",
    "RowFilter",
    "RowFilterError",
    "SubscriptionState",
    "TableSubscription",
    "parse_row_filter",
]
