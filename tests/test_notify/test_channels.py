"""Tests for email / SMS channels — request bodies and failure handling."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from e21alerts.core.types import (
    BreachNotification,
    NotificationDeliveryConfig,
    NotificationRecipient,
    Priority,
    Severity,
)
from e21alerts.hosted.exceptions import HostedConnectionError, HostedRequestError
from e21alerts.notify.channels import EmailChannel, SmsChannel


# ── Helpers ─────────────────────────────────────────────────────


def _breach(**kw: object) -> BreachNotification:
    defaults: dict[str, object] = {
        "org_id": "org-1",
        "breach_id": "br-1",
        "severity": Severity.CRITICAL,
        "actual_value": 150,
        "threshold_value": 120,
        "variance_percentage": 25,
    }
    defaults.update(kw)
    return BreachNotification(**defaults)  # type: ignore[arg-type]


def _config(**kw: object) -> NotificationDeliveryConfig:
    return NotificationDeliveryConfig(**kw)  # type: ignore[arg-type]


def _client(reply: object = None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.invoke = AsyncMock(return_value=reply, side_effect=error)
    return client


RECIPIENTS = [
    NotificationRecipient(name="Ana", role="Administrator", email="ana@bank.ca"),
    NotificationRecipient(name="Risk Manager", role="Risk Management", phone="+1234567890"),
]


# ── EmailChannel ────────────────────────────────────────────────


class TestEmailChannel:
    async def test_send_success(self) -> None:
        client = _client({"success": True})
        ch = EmailChannel(client, "send-email-notification")

        assert await ch.send(_breach(), _config(escalation_delay=30), RECIPIENTS) is True
        function, body = client.invoke.call_args[0]
        assert function == "send-email-notification"
        assert body["to"] == ["ana@bank.ca"]
        assert "CRITICAL" in body["subject"]
        assert "OSFI E-21 Principle 7" in body["html"]
        assert body["metadata"] == {
            "org_id": "org-1",
            "breach_id": "br-1",
            "severity": "critical",
            "escalation_delay_minutes": 30,
        }
        assert "priority" not in body

    async def test_urgent_priority_maps_to_critical(self) -> None:
        client = _client()
        ch = EmailChannel(client, "send-email-notification")
        await ch.send(_breach(), _config(priority=Priority.URGENT))
        body = client.invoke.call_args[0][1]
        assert body["priority"] == "critical"
        assert "to" not in body

    async def test_high_priority(self) -> None:
        client = _client()
        ch = EmailChannel(client, "send-email-notification")
        await ch.send(_breach(), _config(priority=Priority.HIGH))
        assert client.invoke.call_args[0][1]["priority"] == "high"

    async def test_request_error_returns_false(self) -> None:
        client = _client(error=HostedRequestError("boom", status=500))
        ch = EmailChannel(client, "send-email-notification")
        assert await ch.send(_breach(), _config()) is False

    async def test_connection_error_returns_false(self) -> None:
        client = _client(error=HostedConnectionError("down"))
        ch = EmailChannel(client, "send-email-notification")
        assert await ch.send(_breach(), _config()) is False

    async def test_rejected_reply_returns_false(self) -> None:
        client = _client({"success": False, "error": "quota"})
        ch = EmailChannel(client, "send-email-notification")
        assert await ch.send(_breach(), _config()) is False

    def test_reachable(self) -> None:
        ch = EmailChannel(_client(), "fn")
        assert ch.reachable(None) is True
        assert ch.reachable(RECIPIENTS) is True
        assert ch.reachable([RECIPIENTS[1]]) is False


# ── SmsChannel ──────────────────────────────────────────────────


class TestSmsChannel:
    async def test_send_body(self) -> None:
        client = _client({"success": True})
        ch = SmsChannel(client, "send-sms-notification")

        assert await ch.send(_breach(), _config(priority=Priority.URGENT), RECIPIENTS) is True
        function, body = client.invoke.call_args[0]
        assert function == "send-sms-notification"
        assert body["priority"] == "urgent"
        assert body["to"] == ["+1234567890"]
        assert "CRITICAL" in body["message"]
        assert body["metadata"]["breach_id"] == "br-1"

    async def test_error_returns_false(self) -> None:
        client = _client(error=HostedConnectionError("down"))
        ch = SmsChannel(client, "send-sms-notification")
        assert await ch.send(_breach(), _config()) is False

    def test_reachable_needs_phone(self) -> None:
        ch = SmsChannel(_client(), "fn")
        assert ch.reachable([RECIPIENTS[0]]) is False
        assert ch.reachable(RECIPIENTS) is True
        assert ch.function_name == "fn"
