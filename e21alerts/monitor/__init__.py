"""Alert monitoring — live pipeline and stack factory."""

from e21alerts.monitor.factory import create_dispatcher, create_monitor_stack
from e21alerts.monitor.monitor import AlertMonitor

__all__ = ["AlertMonitor", "create_dispatcher", "create_monitor_stack"]
