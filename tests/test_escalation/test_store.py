"""Tests for the hosted escalation store (mocked client)."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from e21alerts.core.types import EscalationExecution, EscalationStatus
from e21alerts.escalation.store import HostedEscalationStore


def _row(**kw: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": "esc-1",
        "org_id": "org-1",
        "alert_id": "inc-1",
        "alert_title": "New critical incident",
        "escalation_level": 3,
        "escalation_reason": "auto",
        "assigned_to": None,
        "assigned_to_name": "Board Risk Committee",
        "status": "active",
        "escalated_at": "2024-06-01T08:00:00+00:00",
        "resolved_at": None,
        "created_at": "2024-06-01T08:00:00+00:00",
    }
    row.update(kw)
    return row


def _client(rows: list[dict[str, object]] | None = None) -> MagicMock:
    client = MagicMock()
    client.select = AsyncMock(return_value=rows or [])
    client.upsert = AsyncMock(return_value=None)
    return client


class TestHostedEscalationStore:
    async def test_get(self) -> None:
        client = _client([_row()])
        ex = await HostedEscalationStore(client).get("esc-1")
        assert ex is not None
        assert ex.escalation_level == 3
        assert ex.escalated_at == datetime(2024, 6, 1, 8, 0, tzinfo=UTC)
        client.select.assert_awaited_once_with("escalation_executions", {"id": "esc-1"}, limit=1)

    async def test_get_missing(self) -> None:
        assert await HostedEscalationStore(_client()).get("nope") is None

    async def test_save_upserts_json(self) -> None:
        client = _client()
        ex = EscalationExecution.model_validate(_row())
        await HostedEscalationStore(client).save(ex)
        table, row = client.upsert.call_args[0]
        assert table == "escalation_executions"
        assert row["status"] == "active"
        assert row["escalated_at"].startswith("2024-06-01T08:00:00")

    async def test_query_filters(self) -> None:
        client = _client([_row(), _row(id="esc-2", status="resolved")])
        rows = await HostedEscalationStore(client).query(
            "org-1", status=EscalationStatus.ACTIVE, limit=10,
        )
        assert [r.id for r in rows] == ["esc-1", "esc-2"]
        client.select.assert_awaited_once_with(
            "escalation_executions",
            {"org_id": "org-1", "status": "active"},
            order="escalated_at.desc",
            limit=10,
        )
