"""Storage backends for escalation executions."""

from __future__ import annotations

import abc

import structlog

from e21alerts.core.types import EscalationExecution, EscalationStatus
from e21alerts.hosted.client import HostedClient

logger = structlog.stdlib.get_logger()

ESCALATIONS_TABLE = "escalation_executions"


class EscalationStore(abc.ABC):
    """Persists escalation executions, partitioned by ``org_id``."""

    @abc.abstractmethod
    async def get(self, execution_id: str) -> EscalationExecution | None:
        """Look up an execution by id."""

    @abc.abstractmethod
    async def save(self, execution: EscalationExecution) -> None:
        """Insert or replace an execution."""

    @abc.abstractmethod
    async def query(
        self,
        org_id: str,
        status: EscalationStatus | None = None,
        limit: int | None = None,
    ) -> list[EscalationExecution]:
        """Executions for *org_id*, most recently escalated first."""


class MemoryEscalationStore(EscalationStore):
    """In-process store keyed by execution id."""

    def __init__(self) -> None:
        self._records: dict[str, EscalationExecution] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, execution_id: str) -> EscalationExecution | None:
        return self._records.get(execution_id)

    async def save(self, execution: EscalationExecution) -> None:
        self._records[execution.id] = execution

    async def query(
        self,
        org_id: str,
        status: EscalationStatus | None = None,
        limit: int | None = None,
    ) -> list[EscalationExecution]:
        rows = [
            r for r in self._records.values()
            if r.org_id == org_id and (status is None or r.status == status)
        ]
        rows.sort(key=lambda r: r.escalated_at, reverse=True)
        return rows[:limit] if limit is not None else rows


class HostedEscalationStore(EscalationStore):
    """Store backed by the hosted ``escalation_executions`` table."""

    def __init__(self, client: HostedClient, table: str = ESCALATIONS_TABLE) -> None:
        self._client = client
        self._table = table

    async def get(self, execution_id: str) -> EscalationExecution | None:
        rows = await self._client.select(self._table, {"id": execution_id}, limit=1)
        if not rows:
            return None
        return EscalationExecution.model_validate(rows[0])

    async def save(self, execution: EscalationExecution) -> None:
        await self._client.upsert(self._table, execution.model_dump(mode="json"))

    async def query(
        self,
        org_id: str,
        status: EscalationStatus | None = None,
        limit: int | None = None,
    ) -> list[EscalationExecution]:
        filters: dict[str, str] = {"org_id": org_id}
        if status is not None:
            filters["status"] = status.value
        rows = await self._client.select(
            self._table, filters, order="escalated_at.desc", limit=limit,
        )
        return [EscalationExecution.model_validate(row) for row in rows]
