"""Hosted database project client (REST rows and Edge Functions)."""

from e21alerts.hosted.client import HostedClient
from e21alerts.hosted.exceptions import (
    HostedClientError,
    HostedConnectionError,
    HostedRequestError,
)

__all__ = [
    "HostedClient",
    "HostedClientError",
    "HostedConnectionError",
    "HostedRequestError",
]
