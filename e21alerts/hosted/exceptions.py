"""Exception hierarchy for the hosted database client."""

from __future__ import annotations


class HostedClientError(Exception):
    """Base exception for all hosted client errors."""

    code: str | None = None


class HostedConnectionError(HostedClientError):
    """Failed to reach the hosted project."""

    code = "connection_error"


class HostedRequestError(HostedClientError):
    """The hosted project answered with a non-success status."""

    def __init__(self, message: str, status: int, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.code = f"http_{status}"
