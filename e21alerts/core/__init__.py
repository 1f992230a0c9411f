"""Core module — config, types, logging, error reporting."""

from e21alerts.core.config import Settings, get_settings, load_settings, reset_settings
from e21alerts.core.errors import ErrorReport, ErrorReporter
from e21alerts.core.logging import setup_logging
from e21alerts.core.types import (
    Alert,
    AlertCategory,
    BreachNotification,
    ChangeEvent,
    ChangeOperation,
    DispatchResult,
    EscalationExecution,
    NotificationDeliveryConfig,
    Priority,
    Severity,
)

__all__ = [
    "Alert",
    "AlertCategory",
    "BreachNotification",
    "ChangeEvent",
    "ChangeOperation",
    "DispatchResult",
    "ErrorReport",
    "ErrorReporter",
    "EscalationExecution",
    "NotificationDeliveryConfig",
    "Priority",
    "Settings",
    "Severity",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
