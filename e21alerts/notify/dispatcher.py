"""Breach notification dispatcher — fans one breach out to email and SMS."""

from __future__ import annotations

import asyncio

import structlog

from e21alerts.core.errors import ErrorReporter
from e21alerts.core.types import (
    Alert,
    BreachNotification,
    ChannelOutcome,
    DeliveryChannel,
    DispatchResult,
    NotificationDeliveryConfig,
    NotificationRecipient,
    Priority,
    Severity,
)
from e21alerts.notify.channels import NotificationChannel
from e21alerts.notify.recipients import RecipientDirectory

logger = structlog.stdlib.get_logger()

NO_RECIPIENTS_ERROR = "No notification recipients found"

TEST_BREACH_FUNCTION = "Customer Transaction Processing"


class NotificationDispatcher:
    """Delivers breach notifications through the configured channels.

    - Email is sent when ``email_enabled``.
    - SMS is sent only when ``sms_enabled`` and the breach is critical.
    - Channels run concurrently and independently: a failing email never
      blocks the SMS, and each failure is logged and reported.
    - A recipient lookup that raises, or finds nobody, aborts the dispatch
      before any channel runs.

    When no *directory* is given, recipients are resolved by the hosted
    functions themselves.
    """

    def __init__(
        self,
        email: NotificationChannel | None = None,
        sms: NotificationChannel | None = None,
        directory: RecipientDirectory | None = None,
        reporter: ErrorReporter | None = None,
        default_config: NotificationDeliveryConfig | None = None,
    ) -> None:
        self._channels: dict[DeliveryChannel, NotificationChannel | None] = {
            DeliveryChannel.EMAIL: email,
            DeliveryChannel.SMS: sms,
        }
        self._directory = directory
        self._reporter = reporter or ErrorReporter()
        self._default_config = default_config or NotificationDeliveryConfig()

    @property
    def default_config(self) -> NotificationDeliveryConfig:
        return self._default_config

    # ── Dispatch ────────────────────────────────────────────────

    async def dispatch(
        self,
        target: Alert | BreachNotification,
        config: NotificationDeliveryConfig | None = None,
    ) -> DispatchResult:
        """Notify about *target* and return the per-channel outcome."""
        breach = target if isinstance(target, BreachNotification) else (
            BreachNotification.from_alert(target)
        )
        config = config or self._default_config
        result = DispatchResult(
            breach_id=breach.breach_id,
            outcomes={ch: ChannelOutcome.SKIPPED for ch in DeliveryChannel},
        )

        recipients: list[NotificationRecipient] | None = None
        if self._directory is not None:
            try:
                recipients = await self._directory.recipients_for(
                    breach.org_id, breach.severity,
                )
            except Exception as exc:
                logger.warning(
                    "recipient_lookup_failed",
                    breach_id=breach.breach_id,
                    org_id=breach.org_id,
                    error=str(exc),
                )
                report = await self._reporter.report(exc, context=f"notify:{breach.breach_id}")
                result.error = report.message
                return result
            if not recipients:
                logger.warning(
                    "no_notification_recipients",
                    breach_id=breach.breach_id,
                    org_id=breach.org_id,
                )
                result.error = NO_RECIPIENTS_ERROR
                return result

        selected = [
            ch for ch in self._selected_channels(breach, config)
            if ch.reachable(recipients)
        ]
        outcomes = await asyncio.gather(
            *(self._deliver(ch, breach, config, recipients) for ch in selected)
        )
        for ch, outcome in zip(selected, outcomes):
            result.outcomes[ch.channel] = outcome

        logger.info(
            "notification_dispatched",
            breach_id=breach.breach_id,
            severity=breach.severity.value,
            outcomes={ch.value: o.value for ch, o in result.outcomes.items()},
        )
        return result

    def _selected_channels(
        self,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
    ) -> list[NotificationChannel]:
        selected: list[NotificationChannel] = []
        email = self._channels[DeliveryChannel.EMAIL]
        if config.email_enabled and email is not None:
            selected.append(email)
        sms = self._channels[DeliveryChannel.SMS]
        if config.sms_enabled and breach.severity == Severity.CRITICAL and sms is not None:
            selected.append(sms)
        return selected

    async def _deliver(
        self,
        channel: NotificationChannel,
        breach: BreachNotification,
        config: NotificationDeliveryConfig,
        recipients: list[NotificationRecipient] | None,
    ) -> ChannelOutcome:
        context = f"notify:{channel.channel.value}"
        try:
            sent = await channel.send(breach, config, recipients)
        except Exception as exc:
            logger.exception(
                "channel_dispatch_error",
                channel=channel.channel.value,
                breach_id=breach.breach_id,
            )
            await self._reporter.report(exc, context=context)
            return ChannelOutcome.FAILED
        if not sent:
            await self._reporter.report(
                f"{channel.channel.value} delivery failed for breach {breach.breach_id}",
                context=context,
                code="delivery_failed",
            )
            return ChannelOutcome.FAILED
        return ChannelOutcome.SENT

    # ── Test notification ───────────────────────────────────────

    async def send_test_notification(self, org_id: str) -> DispatchResult:
        """Send a canned high-severity breach to check the delivery setup."""
        breach = BreachNotification(
            org_id=org_id,
            breach_id=f"test-{org_id}",
            severity=Severity.HIGH,
            actual_value=150,
            threshold_value=120,
            variance_percentage=25,
            business_function_name=TEST_BREACH_FUNCTION,
            description="Test notification for tolerance breach delivery",
        )
        config = NotificationDeliveryConfig(
            email_enabled=True,
            sms_enabled=True,
            priority=Priority.HIGH,
            escalation_delay=15,
        )
        return await self.dispatch(breach, config)

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for ch in self._channels.values():
            if ch is None:
                continue
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=ch.channel.value)
