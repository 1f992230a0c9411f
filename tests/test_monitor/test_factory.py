"""Tests for the monitor factory — wiring from settings."""

from __future__ import annotations

from pydantic import SecretStr

from e21alerts.core.config import AlertsConfig, HostedConfig, NotificationsConfig, Settings
from e21alerts.core.types import NotificationDeliveryConfig, Severity, SourceTable
from e21alerts.escalation.store import HostedEscalationStore
from e21alerts.hosted.client import HostedClient
from e21alerts.monitor.factory import create_dispatcher, create_monitor_stack
from e21alerts.monitor.monitor import AlertMonitor
from e21alerts.notify.channels import EmailChannel, SmsChannel
from e21alerts.notify.recipients import HostedRecipientDirectory
from e21alerts.realtime.phoenix import RealtimeChangeStream
from e21alerts.realtime.stream import MemoryChangeStream


# ── Helpers ─────────────────────────────────────────────────────


def _settings(**kw: object) -> Settings:
    defaults: dict[str, object] = {
        "environment": "test",
        "hosted": HostedConfig(url="https://project.example.co", anon_key=SecretStr("anon")),
    }
    defaults.update(kw)
    return Settings(**defaults)  # type: ignore[arg-type]


# ── Wiring ──────────────────────────────────────────────────────


class TestCreateDispatcher:
    def test_channels_from_config(self) -> None:
        settings = _settings(notifications=NotificationsConfig(
            email_function="email-fn",
            sms_function="sms-fn",
            default_delivery=NotificationDeliveryConfig(sms_enabled=True),
        ))
        disp = create_dispatcher(settings, HostedClient(settings.hosted))

        email = disp._channels[EmailChannel.channel]
        sms = disp._channels[SmsChannel.channel]
        assert isinstance(email, EmailChannel) and email.function_name == "email-fn"
        assert isinstance(sms, SmsChannel) and sms.function_name == "sms-fn"
        assert isinstance(disp._directory, HostedRecipientDirectory)
        assert disp.default_config.sms_enabled is True


class TestCreateMonitorStack:
    def test_default_stream_is_realtime(self) -> None:
        settings = _settings()
        monitor = create_monitor_stack(settings, HostedClient(settings.hosted))
        assert isinstance(monitor, AlertMonitor)
        assert isinstance(monitor._stream, RealtimeChangeStream)
        assert monitor._stream._url.startswith("wss://project.example.co/realtime/v1/websocket")
        assert isinstance(monitor._tracker.store, HostedEscalationStore)

    def test_alert_settings_applied(self) -> None:
        settings = _settings(alerts=AlertsConfig(
            window_size=4,
            watched_tables=[SourceTable.INCIDENT_LOGS],
            auto_escalate_severities=[Severity.HIGH, Severity.CRITICAL],
        ))
        stream = MemoryChangeStream()
        monitor = create_monitor_stack(
            settings, HostedClient(settings.hosted), org_id="org-1", stream=stream,
        )
        assert monitor._stream is stream
        assert monitor.window.max_size == 4
        assert monitor._tables == [SourceTable.INCIDENT_LOGS]
        assert monitor._auto_escalate == {Severity.HIGH, Severity.CRITICAL}
        assert monitor._assignees["board_regulator"] == "Board Risk Committee"

    async def test_reporter_carries_environment(self) -> None:
        settings = _settings()
        monitor = create_monitor_stack(
            settings, HostedClient(settings.hosted), stream=MemoryChangeStream(),
        )
        report = await monitor._reporter.report("x")
        assert report.environment == "test"
