"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

from e21alerts.core.types import (
    NotificationDeliveryConfig,
    NotificationRecipient,
    Severity,
    SourceTable,
)

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class HostedConfig(BaseModel):
    """Hosted database project (REST, Realtime and Edge Functions)."""

    url: str = "http://localhost:54321"
    anon_key: SecretStr = SecretStr("")
    service_key: SecretStr = SecretStr("")
    schema_name: str = "public"
    request_timeout_secs: float | None = None


class RealtimeConfig(BaseModel):
    """Change-stream websocket configuration."""

    url: str = ""  # derived from hosted.url when empty
    heartbeat_secs: float = 30.0
    join_timeout_secs: float = 10.0


class NotificationsConfig(BaseModel):
    """Delivery function names and defaults."""

    email_function: str = "send-email-notification"
    sms_function: str = "send-sms-notification"
    default_delivery: NotificationDeliveryConfig = NotificationDeliveryConfig()
    emergency_contacts: list[NotificationRecipient] = []


class AlertsConfig(BaseModel):
    """Alert window and monitoring configuration."""

    window_size: int = 10
    watched_tables: list[SourceTable] = list(SourceTable)
    auto_escalate_severities: list[Severity] = [Severity.CRITICAL]
    initial_load_limit: int = 5


class EscalationConfig(BaseModel):
    """Default assignee names keyed by tier value."""

    default_assignees: dict[str, str] = {
        "operational": "Business Unit Manager",
        "senior_management": "Chief Risk Officer",
        "board_regulator": "Board Risk Committee",
    }


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    library_level: str = "WARNING"  # websockets / aiohttp loggers


class Settings(BaseModel):
    """Root settings container."""

    environment: str = "development"
    hosted: HostedConfig = HostedConfig()
    realtime: RealtimeConfig = RealtimeConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    alerts: AlertsConfig = AlertsConfig()
    escalation: EscalationConfig = EscalationConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
