"""Recipient lookup for breach notifications."""

from __future__ import annotations

import abc

import structlog

from e21alerts.core.types import NotificationRecipient, Severity
from e21alerts.hosted.client import HostedClient

logger = structlog.stdlib.get_logger()

PROFILES_TABLE = "profiles"
DEFAULT_RECIPIENT_NAME = "Unknown User"
DEFAULT_RECIPIENT_ROLE = "Administrator"


class RecipientDirectory(abc.ABC):
    """Resolves who should hear about a breach in an organisation."""

    @abc.abstractmethod
    async def recipients_for(
        self, org_id: str, severity: Severity,
    ) -> list[NotificationRecipient]:
        """Return the recipients for a breach of *severity* in *org_id*."""


def _with_emergency_contacts(
    recipients: list[NotificationRecipient],
    emergency_contacts: list[NotificationRecipient],
    severity: Severity,
) -> list[NotificationRecipient]:
    if severity == Severity.CRITICAL:
        return recipients + list(emergency_contacts)
    return recipients


class StaticRecipientDirectory(RecipientDirectory):
    """Fixed recipient list, the same for every organisation."""

    def __init__(
        self,
        recipients: list[NotificationRecipient],
        emergency_contacts: list[NotificationRecipient] | None = None,
    ) -> None:
        self._recipients = list(recipients)
        self._emergency = list(emergency_contacts or [])

    async def recipients_for(
        self, org_id: str, severity: Severity,
    ) -> list[NotificationRecipient]:
        return _with_emergency_contacts(list(self._recipients), self._emergency, severity)


class HostedRecipientDirectory(RecipientDirectory):
    """Members of the organisation from the ``profiles`` table.

    Critical breaches also reach the configured emergency contacts, which
    carry the phone numbers used for SMS.
    """

    def __init__(
        self,
        client: HostedClient,
        emergency_contacts: list[NotificationRecipient] | None = None,
    ) -> None:
        self._client = client
        self._emergency = list(emergency_contacts or [])

    async def recipients_for(
        self, org_id: str, severity: Severity,
    ) -> list[NotificationRecipient]:
        rows = await self._client.select(
            PROFILES_TABLE,
            {"organization_id": org_id},
            columns="id,full_name,email",
        )
        recipients = [
            NotificationRecipient(
                name=row.get("full_name") or DEFAULT_RECIPIENT_NAME,
                role=DEFAULT_RECIPIENT_ROLE,
                email=row.get("email") or None,
            )
            for row in rows
        ]
        logger.debug("recipients_resolved", org_id=org_id, profiles=len(recipients))
        return _with_emergency_contacts(recipients, self._emergency, severity)
