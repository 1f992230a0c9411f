"""Notification channels — email and SMS delivery through hosted functions."""

from __future__ import annotations

import abc
from typing import Any

import structlog

from e21alerts.core.types import (
    BreachNotification,
    DeliveryChannel,
    NotificationDeliveryConfig,
    NotificationRecipient,
    Priority,
)
from e21alerts.hosted.client import HostedClient
from e21alerts.hosted.exceptions import HostedClientError
from e21alerts.notify.templates import (
    email_subject,
    render_email_html,
    render_sms_message,
)

logger = structlog.stdlib.get_logger()

# Email function expects the "critical" label for the highest priority.
_EMAIL_PRIORITY: dict[Priority, str] = {
    Priority.NORMAL: "normal",
    Priority.HIGH: "high",
    Priority.URGENT: "critical",
}


def _metadata(breach: BreachNotification, config: NotificationDeliveryConfig) -> dict[str, Any]:
    return {
        "org_id": breach.org_id,
        "breach_id": breach.breach_id,
        "severity": breach.severity.value,
        "escalation_delay_minutes": config.escalation_delay,
    }


def _accepted(reply: Any) -> bool:
    """A function reply counts as success unless it says otherwise."""
    if isinstance(reply, dict) and reply.get("success") is False:
        return False
    return True


class NotificationChannel(abc.ABC):
    """Base class for breach delivery channels."""

    channel: DeliveryChannel

    def reachable(self, recipients: list[NotificationRecipient] | None) -> bool:
        """Whether any of *recipients* can be reached on this channel.

        None means recipients are resolved server-side.
        """
        return True

    @abc.abstractmethod
    async def send(
        self,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
        recipients: list[NotificationRecipient] | None = None,
    ) -> bool:
        """Deliver a breach notification. Returns True on success."""

    async def close(self) -> None:
        """Release resources."""


class FunctionChannel(NotificationChannel):
    """Channel backed by a hosted function invoked with a JSON body."""

    def __init__(self, client: HostedClient, function_name: str) -> None:
        self._client = client
        self._function = function_name

    @property
    def function_name(self) -> str:
        return self._function

    @abc.abstractmethod
    def build_body(
        self,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
        recipients: list[NotificationRecipient] | None,
    ) -> dict[str, Any]:
        """Request body for the hosted function."""

    async def send(
        self,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
        recipients: list[NotificationRecipient] | None = None,
    ) -> bool:
        body = self.build_body(breach, config, recipients)
        try:
            reply = await self._client.invoke(self._function, body)
        except HostedClientError as exc:
            logger.warning(
                f"{self.channel.value}_send_failed",
                function=self._function,
                breach_id=breach.breach_id,
                error=str(exc),
            )
            return False
        if not _accepted(reply):
            logger.warning(
                f"{self.channel.value}_send_rejected",
                function=self._function,
                breach_id=breach.breach_id,
            )
            return False
        return True


class EmailChannel(FunctionChannel):
    """Sends the regulatory breach email."""

    channel = DeliveryChannel.EMAIL

    def reachable(self, recipients: list[NotificationRecipient] | None) -> bool:
        return recipients is None or any(r.email for r in recipients)

    def build_body(
        self,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
        recipients: list[NotificationRecipient] | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "subject": email_subject(breach),
            "html": render_email_html(breach),
            "metadata": _metadata(breach, config),
        }
        if recipients is not None:
            body["to"] = [r.email for r in recipients if r.email]
        if config.priority != Priority.NORMAL:
            body["priority"] = _EMAIL_PRIORITY[config.priority]
        return body


class SmsChannel(FunctionChannel):
    """Sends a short SMS; the dispatcher only uses it for critical breaches."""

    channel = DeliveryChannel.SMS

    def reachable(self, recipients: list[NotificationRecipient] | None) -> bool:
        return recipients is None or any(r.phone for r in recipients)

    def build_body(
        self,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
        recipients: list[NotificationRecipient] | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "priority": config.priority.value,
            "message": render_sms_message(breach),
            "metadata": _metadata(breach, config),
        }
        if recipients is not None:
            body["to"] = [r.phone for r in recipients if r.phone]
        return body
