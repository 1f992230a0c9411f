"""Breach notification rendering, channels and dispatch."""

from e21alerts.notify.channels import (
    EmailChannel,
    FunctionChannel,
    NotificationChannel,
    SmsChannel,
)
from e21alerts.notify.dispatcher import NotificationDispatcher
from e21alerts.notify.recipients import (
    HostedRecipientDirectory,
    RecipientDirectory,
    StaticRecipientDirectory,
)

__all__ = [
    "EmailChannel",
    "FunctionChannel",
    "HostedRecipientDirectory",
    "NotificationChannel",
    "NotificationDispatcher",
    "RecipientDirectory",
    "SmsChannel",
    "StaticRecipientDirectory",
]
