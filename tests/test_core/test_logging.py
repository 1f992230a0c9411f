"""Tests for structlog setup — renderer choice and environment binding."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from e21alerts.core.config import reset_settings
from e21alerts.core.logging import redact_api_keys, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    reset_settings()
    yield
    logging.getLogger().handlers.clear()
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    reset_settings()


class TestSetupLogging:
    def test_json_lines_carry_environment(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO", fmt="json", environment="staging")
        structlog.stdlib.get_logger("test").info("alert_raised", alert_id="inc-1")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "alert_raised"
        assert record["alert_id"] == "inc-1"
        assert record["environment"] == "staging"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="WARNING", fmt="json", environment="test")
        log = structlog.stdlib.get_logger("test")
        log.info("quiet")
        log.warning("loud")

        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err
        assert logging.getLogger().level == logging.WARNING

    def test_console_renderer(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO", fmt="console", environment="test")
        structlog.stdlib.get_logger("test").info("realtime_connected")
        err = capsys.readouterr().err
        assert "realtime_connected" in err
        with pytest.raises(json.JSONDecodeError):
            json.loads(err.strip().splitlines()[-1])

    def test_library_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG", fmt="json", environment="test")
        assert logging.getLogger("websockets").level == logging.WARNING
        assert logging.getLogger("aiohttp").level == logging.WARNING


class TestRedaction:
    def test_realtime_url_key_masked(self) -> None:
        event = {"url": "wss://p.example.co/realtime/v1/websocket?apikey=secret&vsn=1.0.0"}
        out = redact_api_keys(None, "info", event)
        assert out["url"] == "wss://p.example.co/realtime/v1/websocket?apikey=***&vsn=1.0.0"

    def test_bearer_token_masked(self) -> None:
        out = redact_api_keys(None, "info", {"error": "401 for Bearer eyJhbGciOi.abc"})
        assert out["error"] == "401 for Bearer ***"

    def test_non_strings_untouched(self) -> None:
        out = redact_api_keys(None, "info", {"count": 3, "event": "alerts_loaded"})
        assert out == {"count": 3, "event": "alerts_loaded"}

    def test_redacted_in_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO", fmt="json", environment="test")
        structlog.stdlib.get_logger("test").warning(
            "realtime_socket_error", error="closed: ?apikey=topsecret",
        )
        err = capsys.readouterr().err
        assert "topsecret" not in err
        assert "apikey=***" in err
