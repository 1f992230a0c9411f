"""Per-table change subscription with insert / update / delete callbacks."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum
from types import TracebackType

import structlog

from e21alerts.core.errors import ErrorReporter
from e21alerts.core.types import ChangeEvent, ChangeOperation, EventFilter
from e21alerts.realtime.filters import parse_row_filter
from e21alerts.realtime.stream import ChangeStream, ChannelHandle, _call

logger = structlog.stdlib.get_logger()

ChangeCallback = Callable[[ChangeEvent], Awaitable[None] | None]


class SubscriptionState(StrEnum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"
    FAILED = "failed"


class TableSubscription:
    """Binds callbacks to the change events of one table.

    One subscription owns at most one open channel.  Each event invokes
    exactly one callback, chosen by the event's operation; a callback that
    raises is logged and reported but never closes the channel.  Channel
    failures move the subscription to FAILED and are reported, not raised.
    There is no automatic retry: call :meth:`enable` again.

    Usage::

        sub = TableSubscription(
            stream, "incident_logs",
            event=EventFilter.INSERT,
            on_insert=handle_incident,
        )
        async with sub:
            ...  # callbacks fire until the block exits
    """

    def __init__(
        self,
        stream: ChangeStream,
        table: str,
        *,
        event: EventFilter = EventFilter.ANY,
        row_filter: str | None = None,
        on_insert: ChangeCallback | None = None,
        on_update: ChangeCallback | None = None,
        on_delete: ChangeCallback | None = None,
        enabled: bool = True,
        reporter: ErrorReporter | None = None,
    ) -> None:
        if not table or not table.strip():
            raise ValueError("table name must be non-empty")
        self._stream = stream
        self._table = table
        self._event = event
        self._row_filter = parse_row_filter(row_filter)
        self._callbacks: dict[ChangeOperation, ChangeCallback | None] = {
            ChangeOperation.INSERT: on_insert,
            ChangeOperation.UPDATE: on_update,
            ChangeOperation.DELETE: on_delete,
        }
        self._enabled = enabled
        self._reporter = reporter or ErrorReporter()
        self._handle: ChannelHandle | None = None
        self._state = SubscriptionState.UNSUBSCRIBED
        self._delivered = 0
        self._callback_errors = 0

    # ── Properties ──────────────────────────────────────────────

    @property
    def table(self) -> str:
        return self._table

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def delivered(self) -> int:
        """Number of events that reached a callback."""
        return self._delivered

    @property
    def callback_errors(self) -> int:
        return self._callback_errors

    # ── Lifecycle ───────────────────────────────────────────────

    async def enable(self) -> bool:
        """Open the channel. Returns True once subscribed.

        No-op while already SUBSCRIBING or SUBSCRIBED.
        """
        self._enabled = True
        if self._state in (SubscriptionState.SUBSCRIBING, SubscriptionState.SUBSCRIBED):
            return self._state == SubscriptionState.SUBSCRIBED

        self._state = SubscriptionState.SUBSCRIBING
        try:
            handle = await self._stream.open_channel(
                self._table,
                self._on_change,
                event_filter=self._event,
                row_filter=self._row_filter,
                on_error=self._on_channel_error,
            )
        except Exception as exc:
            self._state = SubscriptionState.FAILED
            logger.warning(
                "realtime_channel_error",
                table=self._table,
                phase="subscribe",
                error=str(exc),
            )
            await self._reporter.report(exc, context=f"realtime:{self._table}")
            return False

        if not self._enabled:
            # disabled while the join was in flight
            await self._stream.close_channel(handle)
            self._state = SubscriptionState.UNSUBSCRIBED
            return False

        self._handle = handle
        self._state = SubscriptionState.SUBSCRIBED
        logger.info(
            "realtime_subscribed",
            table=self._table,
            topic=handle.topic,
            event_filter=self._event.value,
            row_filter=str(self._row_filter) if self._row_filter else None,
        )
        return True

    async def disable(self) -> None:
        """Close the channel. Safe to call any number of times."""
        self._enabled = False
        handle, self._handle = self._handle, None
        if handle is not None:
            await self._stream.close_channel(handle)
            logger.info("realtime_unsubscribed", table=self._table, topic=handle.topic)
        if self._state != SubscriptionState.SUBSCRIBING:
            self._state = SubscriptionState.UNSUBSCRIBED

    async def set_enabled(self, enabled: bool) -> None:
        if enabled:
            await self.enable()
        else:
            await self.disable()

    async def __aenter__(self) -> TableSubscription:
        if self._enabled:
            await self.enable()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disable()

    # ── Event routing ───────────────────────────────────────────

    async def _on_change(self, event: ChangeEvent) -> None:
        if self._state != SubscriptionState.SUBSCRIBED:
            return
        callback = self._callbacks.get(event.operation)
        if callback is None:
            return
        self._delivered += 1
        try:
            await _call(callback, event)
        except Exception as exc:
            self._callback_errors += 1
            logger.exception(
                "realtime_callback_error",
                table=self._table,
                operation=event.operation.value,
            )
            await self._reporter.report(
                exc, context=f"realtime:{self._table}:{event.operation.value.lower()}",
            )

    async def _on_channel_error(self, error: Exception) -> None:
        self._handle = None
        self._state = SubscriptionState.FAILED
        logger.warning(
            "realtime_channel_error",
            table=self._table,
            phase="listen",
            error=str(error),
        )
        await self._reporter.report(error, context=f"realtime:{self._table}")
