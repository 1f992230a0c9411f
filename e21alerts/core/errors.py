"""Shared error reporting — normalise, log, and fan out to notifier sinks.

Every failure that is caught at a component boundary (channel errors,
callback errors, delivery failures) is turned into an :class:`ErrorReport`
and handed to the :class:`ErrorReporter`.  The reporter logs it with the
environment label and forwards it to registered sinks; a UI layer registers
a sink that renders the report as a destructive toast.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog
from pydantic import BaseModel, Field

from e21alerts.core.config import get_settings
from e21alerts.core.types import utcnow

logger = structlog.stdlib.get_logger()

DEFAULT_HISTORY_SIZE = 100


class ErrorReport(BaseModel):
    """Normalised error shown to the end user and written to the log."""

    message: str
    code: str | None = None
    context: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    environment: str = ""


ErrorSink = Callable[[ErrorReport], Awaitable[None] | None]


def _message_for(error: BaseException | str) -> str:
    if isinstance(error, str):
        return error
    text = str(error)
    return text or type(error).__name__


class ErrorReporter:
    """Converts exceptions into :class:`ErrorReport` objects and dispatches them.

    Usage::

        reporter = ErrorReporter()
        reporter.on_report(show_toast)
        await reporter.report(exc, context="realtime:incident_logs")
    """

    def __init__(
        self,
        environment: str | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        self._environment = environment
        self._sinks: list[ErrorSink] = []
        self._history: deque[ErrorReport] = deque(maxlen=history_size)

    @property
    def environment(self) -> str:
        if self._environment is None:
            self._environment = get_settings().environment
        return self._environment

    @property
    def history(self) -> list[ErrorReport]:
        """The most recent reports, oldest first."""
        return list(self._history)

    def on_report(self, sink: ErrorSink) -> None:
        """Register a sink that receives every report."""
        self._sinks.append(sink)

    def normalize(
        self,
        error: BaseException | str,
        context: str = "",
        code: str | None = None,
    ) -> ErrorReport:
        return ErrorReport(
            message=_message_for(error),
            code=code or getattr(error, "code", None),
            context=context,
            environment=self.environment,
        )

    async def report(
        self,
        error: BaseException | str,
        context: str = "",
        code: str | None = None,
    ) -> ErrorReport:
        """Log *error* and forward the normalised report to all sinks."""
        report = self.normalize(error, context=context, code=code)
        self._history.append(report)

        logger.error(
            "error_reported",
            message=report.message,
            code=report.code,
            context=report.context,
            environment=report.environment,
            error_type=type(error).__name__ if not isinstance(error, str) else None,
        )

        for sink in self._sinks:
            try:
                result = sink(report)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("error_sink_failed", context=report.context)

        return report
