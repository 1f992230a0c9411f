"""Convenience factory for wiring the alert monitoring stack."""

from __future__ import annotations

from e21alerts.core.config import Settings
from e21alerts.core.errors import ErrorReporter
from e21alerts.escalation.store import HostedEscalationStore
from e21alerts.escalation.tracker import EscalationTracker
from e21alerts.hosted.client import HostedClient
from e21alerts.monitor.monitor import AlertMonitor
from e21alerts.notify.channels import EmailChannel, SmsChannel
from e21alerts.notify.dispatcher import NotificationDispatcher
from e21alerts.notify.recipients import HostedRecipientDirectory
from e21alerts.realtime.phoenix import RealtimeChangeStream
from e21alerts.realtime.stream import ChangeStream


def create_dispatcher(
    settings: Settings,
    client: HostedClient,
    reporter: ErrorReporter | None = None,
) -> NotificationDispatcher:
    """Build a dispatcher delivering through the hosted notification functions."""
    notifications = settings.notifications
    return NotificationDispatcher(
        email=EmailChannel(client, notifications.email_function),
        sms=SmsChannel(client, notifications.sms_function),
        directory=HostedRecipientDirectory(client, notifications.emergency_contacts),
        reporter=reporter,
        default_config=notifications.default_delivery,
    )


def create_monitor_stack(
    settings: Settings,
    client: HostedClient,
    *,
    org_id: str | None = None,
    stream: ChangeStream | None = None,
    reporter: ErrorReporter | None = None,
) -> AlertMonitor:
    """Build a fully wired monitor from config.

    The change stream defaults to the hosted project's Realtime websocket;
    escalations are stored in the hosted ``escalation_executions`` table.
    """
    reporter = reporter or ErrorReporter(environment=settings.environment)
    if stream is None:
        stream = RealtimeChangeStream(client.realtime_url, settings.realtime)

    return AlertMonitor(
        stream,
        create_dispatcher(settings, client, reporter),
        EscalationTracker(HostedEscalationStore(client)),
        org_id=org_id,
        tables=settings.alerts.watched_tables,
        window_size=settings.alerts.window_size,
        auto_escalate=settings.alerts.auto_escalate_severities,
        default_assignees=settings.escalation.default_assignees,
        initial_load_limit=settings.alerts.initial_load_limit,
        reporter=reporter,
    )
