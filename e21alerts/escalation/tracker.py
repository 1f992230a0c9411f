"""EscalationTracker — lifecycle and metrics of escalation executions."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime

import structlog

from e21alerts.core.types import (
    Alert,
    EscalationExecution,
    EscalationMetrics,
    EscalationStatus,
    utcnow,
)
from e21alerts.escalation.exceptions import (
    EscalationAlreadyResolvedError,
    EscalationClosedError,
    EscalationNotFoundError,
)
from e21alerts.escalation.store import EscalationStore, MemoryEscalationStore
from e21alerts.escalation.tiers import tier_for_level

logger = structlog.stdlib.get_logger()

_SECONDS_PER_HOUR = 3600.0


def _new_id() -> str:
    return str(uuid.uuid4())


class EscalationTracker:
    """Creates, resolves and cancels escalations and derives their metrics.

    Executions move ``active → resolved`` or ``active → cancelled`` and
    never leave a terminal state.  Records are kept indefinitely.
    """

    def __init__(
        self,
        store: EscalationStore | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store or MemoryEscalationStore()
        self._clock = clock
        self._id_factory = id_factory

    @property
    def store(self) -> EscalationStore:
        return self._store

    # ── Lifecycle ───────────────────────────────────────────────

    async def create(
        self,
        alert: Alert,
        level: int,
        reason: str,
        assigned_to: str | None = None,
        assigned_to_name: str | None = None,
    ) -> EscalationExecution:
        """Open an active escalation of *alert* at *level*."""
        if level < 1:
            raise ValueError(f"escalation level must be >= 1, got {level}")
        execution = EscalationExecution(
            id=self._id_factory(),
            org_id=alert.org_id,
            alert_id=alert.id,
            alert_title=alert.title,
            escalation_level=level,
            escalation_reason=reason,
            assigned_to=assigned_to,
            assigned_to_name=assigned_to_name,
            status=EscalationStatus.ACTIVE,
            escalated_at=self._clock(),
        )
        await self._store.save(execution)
        logger.info(
            "escalation_created",
            escalation_id=execution.id,
            alert_id=alert.id,
            org_id=alert.org_id,
            level=level,
            tier=tier_for_level(level).value,
            assigned_to=assigned_to_name or assigned_to,
        )
        return execution

    async def get(self, execution_id: str) -> EscalationExecution:
        execution = await self._store.get(execution_id)
        if execution is None:
            raise EscalationNotFoundError(f"escalation {execution_id} not found")
        return execution

    async def resolve(self, execution_id: str) -> EscalationExecution:
        """Mark an active escalation resolved at the current time.

        Raises:
            EscalationNotFoundError: Unknown id.
            EscalationAlreadyResolvedError: Already resolved.
            EscalationClosedError: The escalation was cancelled.
        """
        execution = await self._open_execution(execution_id)
        resolved = execution.model_copy(
            update={"status": EscalationStatus.RESOLVED, "resolved_at": self._clock()},
        )
        await self._store.save(resolved)
        logger.info(
            "escalation_resolved",
            escalation_id=execution_id,
            org_id=resolved.org_id,
            hours=round(_resolution_hours(resolved) or 0.0, 2),
        )
        return resolved

    async def cancel(self, execution_id: str, reason: str = "") -> EscalationExecution:
        """Withdraw an active escalation. Cancelled records never count as resolved."""
        execution = await self._open_execution(execution_id)
        cancelled = execution.model_copy(update={"status": EscalationStatus.CANCELLED})
        await self._store.save(cancelled)
        logger.info(
            "escalation_cancelled",
            escalation_id=execution_id,
            org_id=cancelled.org_id,
            reason=reason,
        )
        return cancelled

    async def _open_execution(self, execution_id: str) -> EscalationExecution:
        execution = await self.get(execution_id)
        if execution.status == EscalationStatus.RESOLVED:
            raise EscalationAlreadyResolvedError(
                f"escalation {execution_id} is already resolved"
            )
        if execution.status == EscalationStatus.CANCELLED:
            raise EscalationClosedError(f"escalation {execution_id} was cancelled")
        return execution

    # ── Queries ─────────────────────────────────────────────────

    async def active(self, org_id: str) -> list[EscalationExecution]:
        return await self._store.query(org_id, status=EscalationStatus.ACTIVE)

    async def recent(self, org_id: str, limit: int = 20) -> list[EscalationExecution]:
        return await self._store.query(org_id, limit=limit)

    async def metrics(self, org_id: str) -> EscalationMetrics:
        """Aggregate the organisation's escalations.

        The average resolution time only covers resolved records; active
        and cancelled ones are excluded.  ``resolved_today`` uses the
        tracker clock's calendar date.
        """
        records = await self._store.query(org_id)
        today = self._clock().date()

        durations: list[float] = []
        resolved_today = 0
        for r in records:
            hours = _resolution_hours(r)
            if r.status != EscalationStatus.RESOLVED or hours is None:
                continue
            durations.append(hours)
            if r.resolved_at.date() == today:
                resolved_today += 1
        levels = Counter(r.escalation_level for r in records)
        statuses = Counter(r.status for r in records)

        return EscalationMetrics(
            total=len(records),
            active=statuses[EscalationStatus.ACTIVE],
            resolved_today=resolved_today,
            avg_resolution_hours=sum(durations) / len(durations) if durations else 0.0,
            by_level=dict(sorted(levels.items())),
            by_status={s.value: statuses[s] for s in EscalationStatus},
        )


def _resolution_hours(execution: EscalationExecution) -> float | None:
    if execution.resolved_at is None:
        return None
    delta = execution.resolved_at - execution.escalated_at
    return delta.total_seconds() / _SECONDS_PER_HOUR
