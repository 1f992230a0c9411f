"""AlertMonitor — live alert pipeline from change events to escalations.

One INSERT subscription per watched table feeds the classifier.  Each
qualifying alert is pushed onto the rolling window, handed to alert
listeners, dispatched as a notification and, for the configured
severities, escalated automatically.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Awaitable, Callable, Iterable

import structlog

from e21alerts.alerts.classifier import classify, classify_row
from e21alerts.alerts.metrics import compute_system_metrics
from e21alerts.alerts.window import AlertWindow
from e21alerts.core.errors import ErrorReporter
from e21alerts.core.types import (
    Alert,
    ChangeEvent,
    DispatchResult,
    EscalationExecution,
    EventFilter,
    Severity,
    SourceTable,
    SystemMetrics,
)
from e21alerts.escalation.tiers import level_for_severity, tier_for_level
from e21alerts.escalation.tracker import EscalationTracker
from e21alerts.hosted.client import HostedClient
from e21alerts.notify.dispatcher import NotificationDispatcher
from e21alerts.realtime.stream import ChangeStream, _call
from e21alerts.realtime.subscription import TableSubscription

logger = structlog.stdlib.get_logger()

AlertListener = Callable[[Alert], Awaitable[None] | None]

# Start-up backfill: filters and ordering column per table.
_RECENT_QUERIES: dict[SourceTable, tuple[dict[str, object], str]] = {
    SourceTable.INCIDENT_LOGS: ({"status": ["open", "in_progress"]}, "reported_at.desc"),
    SourceTable.APPETITE_BREACH_LOGS: ({"resolution_status": "open"}, "breach_date.desc"),
    SourceTable.DEPENDENCY_LOGS: ({"tolerance_breached": True}, "detected_at.desc"),
}


class AlertMonitor:
    """Wires subscriptions, classifier, window, dispatcher and tracker.

    Usage::

        monitor = AlertMonitor(stream, dispatcher, tracker, org_id=org_id)
        monitor.on_alert(render_toast)
        await monitor.load_recent(client)
        await monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        stream: ChangeStream,
        dispatcher: NotificationDispatcher,
        tracker: EscalationTracker,
        *,
        org_id: str | None = None,
        tables: Iterable[SourceTable] = tuple(SourceTable),
        window_size: int = 10,
        auto_escalate: Iterable[Severity] = (Severity.CRITICAL,),
        default_assignees: dict[str, str] | None = None,
        initial_load_limit: int = 5,
        dispatch_history: int = 100,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self._stream = stream
        self._dispatcher = dispatcher
        self._tracker = tracker
        self._org_id = org_id
        self._tables = list(tables)
        self._window = AlertWindow(window_size)
        self._auto_escalate = frozenset(auto_escalate)
        self._assignees = dict(default_assignees or {})
        self._initial_load_limit = initial_load_limit
        self._reporter = reporter or ErrorReporter()
        self._listeners: list[AlertListener] = []
        self._subscriptions: list[TableSubscription] = []
        self._dispatches: deque[DispatchResult] = deque(maxlen=dispatch_history)

    # ── Properties ──────────────────────────────────────────────

    @property
    def window(self) -> AlertWindow:
        return self._window

    @property
    def subscriptions(self) -> list[TableSubscription]:
        return list(self._subscriptions)

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def dispatches(self) -> list[DispatchResult]:
        """Results of the most recent notifications, oldest first."""
        return list(self._dispatches)

    def alerts(self) -> list[Alert]:
        return self._window.snapshot()

    def on_alert(self, listener: AlertListener) -> None:
        """Register a listener called with every new live alert."""
        self._listeners.append(listener)

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> bool:
        """Subscribe to INSERTs on every watched table.

        Returns True if every subscription is live.  Failed subscriptions
        are reported and kept; calling :meth:`start` again retries them.
        """
        row_filter = f"org_id=eq.{self._org_id}" if self._org_id else None
        for table in self._tables[len(self._subscriptions):]:
            self._subscriptions.append(
                TableSubscription(
                    self._stream,
                    table.value,
                    event=EventFilter.INSERT,
                    row_filter=row_filter,
                    on_insert=self._on_insert,
                    reporter=self._reporter,
                )
            )

        results = [await sub.enable() for sub in self._subscriptions]
        logger.info(
            "alert_monitor_started",
            tables=[t.value for t in self._tables],
            subscribed=sum(results),
            org_id=self._org_id,
        )
        return all(results)

    async def stop(self) -> None:
        """Close every subscription. Safe to call repeatedly."""
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            await sub.disable()
        if subs:
            logger.info("alert_monitor_stopped", tables=[s.table for s in subs])

    async def close(self) -> None:
        """Stop, then release the change stream and delivery channels."""
        await self.stop()
        await self._stream.close()
        await self._dispatcher.close()

    # ── Alert handling ──────────────────────────────────────────

    async def _on_insert(self, event: ChangeEvent) -> None:
        alert = classify(event)
        if alert is None:
            return
        await self.handle_alert(alert)

    async def handle_alert(self, alert: Alert) -> None:
        """Record, notify about and, if configured, escalate *alert*."""
        self._window.add(alert)
        logger.info(
            "alert_raised",
            alert_id=alert.id,
            category=alert.category.value,
            severity=alert.severity.value,
            org_id=alert.org_id,
        )

        for listener in self._listeners:
            try:
                await _call(listener, alert)
            except Exception as exc:
                logger.exception("alert_listener_error", alert_id=alert.id)
                await self._reporter.report(exc, context=f"monitor:{alert.id}")

        result = await self._dispatcher.dispatch(alert)
        self._dispatches.append(result)

        if alert.severity in self._auto_escalate:
            await self._escalate(alert)

    async def _escalate(self, alert: Alert) -> EscalationExecution:
        level = level_for_severity(alert.severity)
        tier = tier_for_level(level)
        return await self._tracker.create(
            alert,
            level,
            reason=f"Automatic escalation of {alert.severity.value} {alert.category.value} alert",
            assigned_to_name=self._assignees.get(tier.value),
        )

    def acknowledge(self, alert_id: str) -> bool:
        acknowledged = self._window.acknowledge(alert_id)
        if acknowledged:
            logger.info("alert_acknowledged", alert_id=alert_id)
        return acknowledged

    # ── Backfill ────────────────────────────────────────────────

    async def load_recent(self, client: HostedClient) -> list[Alert]:
        """Fill the window from recent open rows of every watched table.

        Rows pass through the same qualification rules as live events but
        are neither notified nor escalated.  Returns the loaded alerts,
        newest first.
        """
        loaded: list[Alert] = []
        for table in self._tables:
            filters, order = _RECENT_QUERIES[table]
            if self._org_id:
                filters = {**filters, "org_id": self._org_id}
            rows = await client.select(
                table.value, filters, order=order, limit=self._initial_load_limit,
            )
            for row in rows:
                alert = classify_row(table.value, row, live=False)
                if alert is not None:
                    loaded.append(alert)

        loaded.sort(key=lambda a: a.timestamp, reverse=True)
        loaded = loaded[: self._window.max_size]
        self._window.extend(loaded)
        logger.info("alerts_loaded", count=len(loaded), org_id=self._org_id)
        return loaded

    # ── Metrics ─────────────────────────────────────────────────

    async def metrics(self) -> SystemMetrics:
        """Dashboard counters over the window and the orgs' active escalations."""
        alerts = self._window.snapshot()
        if self._org_id:
            org_ids = {self._org_id}
        else:
            org_ids = {a.org_id for a in alerts if a.org_id}
        escalations: list[EscalationExecution] = []
        for org_id in sorted(org_ids):
            escalations.extend(await self._tracker.active(org_id))
        return compute_system_metrics(alerts, escalations)
