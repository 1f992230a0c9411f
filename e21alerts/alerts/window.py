"""Rolling window of the most recent alerts."""

from __future__ import annotations

from collections import deque

from e21alerts.core.types import Alert, AlertCategory, Severity


class AlertWindow:
    """Keeps the *max_size* most recent alerts, newest first.

    Alerts are never deleted explicitly; older ones fall off the end as
    new ones arrive.  Repeated deliveries of the same row are kept as
    separate entries.
    """

    def __init__(self, max_size: int = 10) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._alerts: deque[Alert] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._alerts.maxlen or 0

    def __len__(self) -> int:
        return len(self._alerts)

    def add(self, alert: Alert) -> None:
        self._alerts.appendleft(alert)

    def extend(self, alerts: list[Alert]) -> None:
        """Add *alerts* (already ordered newest first) behind the current ones."""
        for alert in alerts:
            if len(self._alerts) >= self.max_size:
                break
            self._alerts.append(alert)

    def acknowledge(self, alert_id: str) -> bool:
        """Mark every entry for *alert_id* acknowledged. Returns True if any matched."""
        matched = False
        for i, alert in enumerate(self._alerts):
            if alert.id != alert_id:
                continue
            matched = True
            if not alert.acknowledged:
                self._alerts[i] = alert.model_copy(update={"acknowledged": True})
        return matched

    def snapshot(self) -> list[Alert]:
        return list(self._alerts)

    def unacknowledged(self) -> list[Alert]:
        return [a for a in self._alerts if not a.acknowledged]

    def by_category(self, category: AlertCategory) -> list[Alert]:
        return [a for a in self._alerts if a.category == category]

    def by_severity(self, severity: Severity) -> list[Alert]:
        return [a for a in self._alerts if a.severity == severity]

    def clear(self) -> None:
        self._alerts.clear()
