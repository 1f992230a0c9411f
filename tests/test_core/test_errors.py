"""Tests for ErrorReporter — normalisation, history, sink fan-out."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from e21alerts.core.errors import ErrorReport, ErrorReporter
from e21alerts.hosted.exceptions import HostedRequestError


class TestNormalize:
    def test_exception_message_and_environment(self) -> None:
        reporter = ErrorReporter(environment="test")
        report = reporter.normalize(RuntimeError("boom"), context="realtime:incident_logs")
        assert report.message == "boom"
        assert report.context == "realtime:incident_logs"
        assert report.environment == "test"
        assert report.code is None

    def test_empty_message_uses_type_name(self) -> None:
        report = ErrorReporter(environment="test").normalize(TimeoutError())
        assert report.message == "TimeoutError"

    def test_string_error(self) -> None:
        report = ErrorReporter(environment="test").normalize("plain text", code="x")
        assert report.message == "plain text"
        assert report.code == "x"

    def test_code_taken_from_exception(self) -> None:
        exc = HostedRequestError("bad", status=503, body="")
        report = ErrorReporter(environment="test").normalize(exc)
        assert report.code == "http_503"

    def test_explicit_code_wins(self) -> None:
        exc = HostedRequestError("bad", status=503, body="")
        report = ErrorReporter(environment="test").normalize(exc, code="override")
        assert report.code == "override"


class TestReport:
    async def test_report_records_history(self) -> None:
        reporter = ErrorReporter(environment="test")
        report = await reporter.report(ValueError("bad row"), context="ctx")
        assert isinstance(report, ErrorReport)
        assert reporter.history == [report]

    async def test_sync_and_async_sinks_called(self) -> None:
        reporter = ErrorReporter(environment="test")
        sync_sink = MagicMock(return_value=None)
        async_sink = AsyncMock()
        reporter.on_report(sync_sink)
        reporter.on_report(async_sink)

        report = await reporter.report("oops")
        sync_sink.assert_called_once_with(report)
        async_sink.assert_awaited_once_with(report)

    async def test_failing_sink_does_not_block_others(self) -> None:
        reporter = ErrorReporter(environment="test")
        bad = MagicMock(side_effect=RuntimeError("sink down"))
        good = MagicMock(return_value=None)
        reporter.on_report(bad)
        reporter.on_report(good)

        await reporter.report("oops")
        good.assert_called_once()

    async def test_history_is_a_copy(self) -> None:
        reporter = ErrorReporter(environment="test")
        await reporter.report("one")
        reporter.history.clear()
        assert len(reporter.history) == 1

    async def test_history_keeps_most_recent(self) -> None:
        reporter = ErrorReporter(environment="test", history_size=3)
        for i in range(5):
            await reporter.report(f"error {i}")
        assert [r.message for r in reporter.history] == ["error 2", "error 3", "error 4"]
