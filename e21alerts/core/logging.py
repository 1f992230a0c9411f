"""Structured logging setup using structlog.

Records are rendered as JSON lines (or console output for local runs),
carry the deployment environment, and never contain hosted API keys.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from e21alerts.core.config import get_settings

# Transport libraries whose loggers follow ``logging.library_level``.
_LIBRARY_LOGGERS = ("websockets", "aiohttp", "asyncio")

_API_KEY_RE = re.compile(r"(apikey=|Bearer\s+)[^&\s\"']+", re.IGNORECASE)
_REDACTED = r"\1***"


def redact_api_keys(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask ``apikey=`` query params and bearer tokens in string values."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _API_KEY_RE.sub(_REDACTED, value)
    return event_dict


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    environment: str | None = None,
) -> None:
    """Configure structlog over the stdlib root logger.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer format override ("json" or "console"). Uses config if None.
        environment: Environment label bound to every record. Uses config if None.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.logging.level).upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_api_keys,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.processors.add_log_level, redact_api_keys],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(fmt or settings.logging.format),
            ],
        ),
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    library_level = getattr(logging, settings.logging.library_level.upper(), logging.WARNING)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(max(library_level, log_level))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        environment=environment or settings.environment,
    )
