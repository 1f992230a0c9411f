"""Tests for e21alerts/core/config.py — YAML loading, defaults, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from e21alerts.core.config import (
    AlertsConfig,
    HostedConfig,
    LoggingConfig,
    NotificationsConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from e21alerts.core.types import Priority, Severity, SourceTable


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_hosted_config(self) -> None:
        cfg = HostedConfig()
        assert cfg.url == "http://localhost:54321"
        assert cfg.schema_name == "public"
        assert cfg.anon_key.get_secret_value() == ""

    def test_default_notifications_config(self) -> None:
        cfg = NotificationsConfig()
        assert cfg.email_function == "send-email-notification"
        assert cfg.sms_function == "send-sms-notification"
        assert cfg.default_delivery.email_enabled is True
        assert cfg.default_delivery.sms_enabled is False
        assert cfg.default_delivery.priority == Priority.NORMAL

    def test_default_alerts_config(self) -> None:
        cfg = AlertsConfig()
        assert cfg.window_size == 10
        assert cfg.watched_tables == list(SourceTable)
        assert cfg.auto_escalate_severities == [Severity.CRITICAL]

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.environment == "development"
        assert s.realtime.heartbeat_secs == 30.0
        assert s.escalation.default_assignees["senior_management"] == "Chief Risk Officer"


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "environment": "staging",
            "hosted": {
                "url": "https://project.example.co",
                "anon_key": "anon-key",
                "service_key": "service-key",
            },
            "notifications": {
                "default_delivery": {
                    "email_enabled": True,
                    "sms_enabled": True,
                    "priority": "urgent",
                    "escalation_delay": 30,
                },
                "emergency_contacts": [
                    {"name": "Risk Manager", "role": "Risk Management", "phone": "+15550001"},
                ],
            },
            "alerts": {"window_size": 25},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        s = load_settings(config_file)
        assert s.environment == "staging"
        assert s.hosted.url == "https://project.example.co"
        assert s.hosted.service_key.get_secret_value() == "service-key"
        assert s.notifications.default_delivery.priority == Priority.URGENT
        assert s.notifications.default_delivery.escalation_delay == 30
        assert s.notifications.emergency_contacts[0].phone == "+15550001"
        assert s.alerts.window_size == 25
        assert s.logging.level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        s = load_settings(tmp_path / "nonexistent.yaml")
        assert s.alerts.window_size == 10

    def test_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        s = load_settings(config_file)
        assert s.environment == "development"

    def test_partial_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "partial.yaml"
        config_file.write_text(yaml.dump({"realtime": {"heartbeat_secs": 5}}))
        s = load_settings(config_file)
        assert s.realtime.heartbeat_secs == 5
        assert s.realtime.join_timeout_secs == 10.0


class TestSecretStr:
    def test_secrets_not_in_repr(self) -> None:
        cfg = HostedConfig(anon_key="super-secret")  # type: ignore[arg-type]
        assert "super-secret" not in repr(cfg)
        assert cfg.anon_key.get_secret_value() == "super-secret"


class TestGetSettings:
    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"environment": "cached"}))
        load_settings(config_file)
        assert get_settings().environment == "cached"
        assert get_settings() is get_settings()

    def test_reset_settings(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"environment": "first"}))
        first = load_settings(config_file)
        reset_settings()
        assert get_settings() is not first
