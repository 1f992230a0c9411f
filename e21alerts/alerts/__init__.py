"""Alert classification, the rolling alert window, and derived metrics."""

from e21alerts.alerts.classifier import classify, classify_row, parse_row
from e21alerts.alerts.metrics import compute_system_metrics
from e21alerts.alerts.window import AlertWindow

__all__ = [
    "AlertWindow",
    "classify",
    "classify_row",
    "compute_system_metrics",
    "parse_row",
]
