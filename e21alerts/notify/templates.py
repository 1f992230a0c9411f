"""Pure functions that render breach notifications for each delivery channel.

The citation and disclaimer strings are regulatory content and are
reproduced verbatim in every email.
"""

from __future__ import annotations

from html import escape as html_escape

from e21alerts.core.types import BreachNotification, Severity

EMAIL_HEADING = "OSFI E-21 Tolerance Breach Alert"

REGULATORY_DISCLAIMER = (
    "Important: This automated analysis is based on OSFI Guideline E-21 requirements. "
    "This does not constitute regulatory advice. Organizations should consult OSFI "
    "directly or qualified compliance professionals for specific regulatory guidance "
    "applicable to their institution's circumstances."
)

_CRITICAL_CITATION = (
    "Per OSFI E-21 Principle 7, this disruption exceeds your institution's defined "
    "tolerance for critical operations. Principle 5 requires immediate escalation to "
    "board and senior management. Principle 6 requires assessment of critical "
    "operations and dependencies impact."
)

_STANDARD_CITATION = (
    "Per OSFI E-21 Principle 7, this event indicates a potential exceedance of defined "
    "disruption tolerances. Principle 5 requires monitoring and appropriate escalation "
    "based on severity and duration."
)

_CRITICAL_ACTIONS = [
    "Immediate board/senior management notification required",
    "Activate incident response procedures",
    "Document root cause analysis within 24 hours",
    "Implement immediate containment measures",
]

_STANDARD_ACTIONS = [
    "Management review and assessment required",
    "Document breach circumstances and impact",
    "Review and update tolerance levels if necessary",
    "Monitor for additional related breaches",
]

_SEVERITY_COLORS: dict[Severity, str] = {
    Severity.CRITICAL: "#dc2626",  # red
    Severity.HIGH: "#ea580c",      # orange
    Severity.MEDIUM: "#d97706",    # amber
    Severity.LOW: "#059669",       # green
}

_NEUTRAL_COLOR = "#6b7280"


def severity_color(severity: Severity) -> str:
    return _SEVERITY_COLORS.get(severity, _NEUTRAL_COLOR)


def osfi_citation(severity: Severity) -> str:
    """Regulatory citation paragraph for a breach of *severity*."""
    if severity == Severity.CRITICAL:
        return _CRITICAL_CITATION
    return _STANDARD_CITATION


def required_actions(severity: Severity) -> list[str]:
    if severity == Severity.CRITICAL:
        return list(_CRITICAL_ACTIONS)
    return list(_STANDARD_ACTIONS)


def _value(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:g}"


def _variance(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:.1f}%"


def email_subject(breach: BreachNotification) -> str:
    return f"{EMAIL_HEADING} - {breach.severity.value.upper()} Severity"


def _row(label: str, value: str, color: str | None = None) -> str:
    style = "padding: 12px; border: 1px solid #d1d5db;"
    value_style = f"{style} color: {color}; font-weight: bold;" if color else style
    return (
        f'<tr><td style="{style}">{html_escape(label, quote=False)}</td>'
        f'<td style="{value_style}">{html_escape(value, quote=False)}</td></tr>'
    )


def render_email_html(breach: BreachNotification) -> str:
    """Render the HTML body of a breach email."""
    color = severity_color(breach.severity)
    severity_label = breach.severity.value.upper()

    rows = [
        _row("Detected At", breach.detected_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()),
        _row("Actual Value", _value(breach.actual_value), color),
        _row("Threshold Value", _value(breach.threshold_value)),
        _row("Variance", _variance(breach.variance_percentage), color),
    ]
    if breach.business_function_name:
        rows.append(_row("Business Function", breach.business_function_name))
    if breach.description:
        rows.append(_row("Description", breach.description))

    actions = "".join(
        f"<li>{html_escape(action, quote=False)}</li>"
        for action in required_actions(breach.severity)
    )

    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h1 style="color: {color}; font-size: 24px;">{EMAIL_HEADING}</h1>'
        f'<div style="background-color: {color}; color: white; padding: 8px 16px;">'
        f"{severity_label} SEVERITY</div>"
        '<div style="background-color: #fef3c7; padding: 20px;">'
        "<h3>OSFI E-21 Regulatory Citation</h3>"
        f"<p>{html_escape(osfi_citation(breach.severity), quote=False)}</p></div>"
        '<table style="width: 100%; border-collapse: collapse;">'
        + _row("Breach Details", "Values")
        + "".join(rows)
        + "</table>"
        '<div style="background-color: #fecaca; padding: 16px;">'
        f"<h3>Required Actions</h3><ul>{actions}</ul></div>"
        '<div style="background-color: #e5e7eb; padding: 16px;">'
        "<h3>Regulatory Disclaimer</h3>"
        f'<p style="font-size: 12px;">{html_escape(REGULATORY_DISCLAIMER, quote=False)}</p></div>'
        "</div>"
    )


def render_sms_message(breach: BreachNotification) -> str:
    """Short text for SMS delivery (critical breaches only)."""
    subject = breach.business_function_name or "Critical System"
    return (
        f"OSFI E-21 {breach.severity.value.upper()} tolerance breach: {subject}. "
        f"Actual {_value(breach.actual_value)} vs threshold "
        f"{_value(breach.threshold_value)} ({_variance(breach.variance_percentage)}). "
        "Immediate escalation to senior management required."
    )
