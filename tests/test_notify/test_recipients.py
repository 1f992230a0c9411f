"""Tests for recipient directories."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from e21alerts.core.types import NotificationRecipient, Severity
from e21alerts.notify.recipients import HostedRecipientDirectory, StaticRecipientDirectory

EMERGENCY = [
    NotificationRecipient(name="Risk Manager", role="Risk Management", phone="+1234567890"),
    NotificationRecipient(name="CRO", role="Chief Risk Officer", phone="+1234567891"),
]


def _client(rows: list[dict[str, object]]) -> MagicMock:
    client = MagicMock()
    client.select = AsyncMock(return_value=rows)
    return client


class TestHostedRecipientDirectory:
    async def test_profiles_become_recipients(self) -> None:
        client = _client([
            {"id": "u1", "full_name": "Ana Lima", "email": "ana@bank.ca"},
            {"id": "u2", "full_name": None, "email": None},
        ])
        directory = HostedRecipientDirectory(client, EMERGENCY)

        recipients = await directory.recipients_for("org-1", Severity.HIGH)

        client.select.assert_awaited_once_with(
            "profiles", {"organization_id": "org-1"}, columns="id,full_name,email",
        )
        assert [r.name for r in recipients] == ["Ana Lima", "Unknown User"]
        assert recipients[0].email == "ana@bank.ca"
        assert recipients[1].email is None
        assert all(r.role == "Administrator" for r in recipients)

    async def test_critical_adds_emergency_contacts(self) -> None:
        client = _client([{"id": "u1", "full_name": "Ana", "email": "ana@bank.ca"}])
        directory = HostedRecipientDirectory(client, EMERGENCY)

        recipients = await directory.recipients_for("org-1", Severity.CRITICAL)
        assert [r.phone for r in recipients if r.phone] == ["+1234567890", "+1234567891"]

    async def test_no_profiles(self) -> None:
        directory = HostedRecipientDirectory(_client([]), EMERGENCY)
        assert await directory.recipients_for("org-1", Severity.HIGH) == []


class TestStaticRecipientDirectory:
    async def test_static(self) -> None:
        ana = NotificationRecipient(name="Ana", email="ana@bank.ca")
        directory = StaticRecipientDirectory([ana], EMERGENCY)
        assert await directory.recipients_for("any", Severity.LOW) == [ana]
        assert len(await directory.recipients_for("any", Severity.CRITICAL)) == 3
