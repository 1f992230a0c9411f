"""Real-time OSFI E-21 alerting: change-stream subscriptions, alert
classification, breach notification and escalation tracking."""

__version__ = "0.1.0"
