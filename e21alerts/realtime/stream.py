"""Change-stream transport interface and an in-process implementation."""

from __future__ import annotations

import abc
import asyncio
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from e21alerts.core.types import ChangeEvent, EventFilter
from e21alerts.realtime.exceptions import RealtimeSubscriptionError
from e21alerts.realtime.filters import RowFilter

logger = structlog.stdlib.get_logger()

ChangeHandler = Callable[[ChangeEvent], Awaitable[None] | None]
ChannelErrorHandler = Callable[[Exception], Awaitable[None] | None]

_topic_counter = itertools.count(1)


def next_topic(table: str) -> str:
    """Unique channel topic for one (table, subscriber) pair."""
    return f"{table}-changes-{next(_topic_counter)}"


@dataclass
class ChannelHandle:
    """Open channel bound to one table for one subscriber."""

    topic: str
    table: str
    event_filter: EventFilter
    row_filter: RowFilter | None
    handler: ChangeHandler
    on_error: ChannelErrorHandler | None = None
    schema_name: str = "public"
    closed: bool = False

    def accepts(self, event: ChangeEvent) -> bool:
        if self.closed or event.table != self.table:
            return False
        if event.schema_name != self.schema_name:
            return False
        if not self.event_filter.matches(event.operation):
            return False
        if self.row_filter is not None and not self.row_filter.matches(event.row):
            return False
        return True


async def _call(fn: Callable[..., Awaitable[None] | None], *args: object) -> None:
    result = fn(*args)
    if asyncio.iscoroutine(result):
        await result


class ChangeStream(abc.ABC):
    """Source of row-level change events, one channel per subscription."""

    @abc.abstractmethod
    async def open_channel(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        event_filter: EventFilter = EventFilter.ANY,
        row_filter: RowFilter | None = None,
        on_error: ChannelErrorHandler | None = None,
    ) -> ChannelHandle:
        """Join a channel for *table*.

        Raises:
            RealtimeError: if the channel cannot be joined.
        """

    @abc.abstractmethod
    async def close_channel(self, handle: ChannelHandle) -> None:
        """Leave a channel. Closing an already-closed handle is a no-op."""

    async def close(self) -> None:
        """Release transport resources."""


class MemoryChangeStream(ChangeStream):
    """In-process change stream used for local runs and tests.

    Events passed to :meth:`publish` are delivered to every open channel
    that accepts them, in channel-open order, awaiting each handler before
    moving on.
    """

    def __init__(self, schema_name: str = "public") -> None:
        self._schema = schema_name
        self._channels: dict[str, ChannelHandle] = {}
        self._reject_tables: set[str] = set()

    @property
    def open_channels(self) -> list[ChannelHandle]:
        return [h for h in self._channels.values() if not h.closed]

    def reject_joins(self, table: str) -> None:
        """Make future joins for *table* fail (simulates a server reject)."""
        self._reject_tables.add(table)

    def accept_joins(self, table: str) -> None:
        self._reject_tables.discard(table)

    async def open_channel(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        event_filter: EventFilter = EventFilter.ANY,
        row_filter: RowFilter | None = None,
        on_error: ChannelErrorHandler | None = None,
    ) -> ChannelHandle:
        if table in self._reject_tables:
            raise RealtimeSubscriptionError(f"join rejected for table {table}")
        handle = ChannelHandle(
            topic=next_topic(table),
            table=table,
            event_filter=event_filter,
            row_filter=row_filter,
            handler=handler,
            on_error=on_error,
            schema_name=self._schema,
        )
        self._channels[handle.topic] = handle
        return handle

    async def close_channel(self, handle: ChannelHandle) -> None:
        handle.closed = True
        self._channels.pop(handle.topic, None)

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver *event*; returns the number of channels that received it."""
        delivered = 0
        for handle in list(self._channels.values()):
            if handle.accepts(event):
                await _call(handle.handler, event)
                delivered += 1
        return delivered

    async def fail_channel(self, handle: ChannelHandle, error: Exception) -> None:
        """Simulate a channel-level error reported by the server."""
        await self.close_channel(handle)
        if handle.on_error is not None:
            await _call(handle.on_error, error)

    async def close(self) -> None:
        for handle in list(self._channels.values()):
            await self.close_channel(handle)
