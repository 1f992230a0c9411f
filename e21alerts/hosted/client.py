"""Thin async client for the hosted database project.

Covers the three surfaces the alerting subsystem needs:

- Edge Functions (``/functions/v1/<name>``) for email / SMS delivery
- REST rows (``/rest/v1/<table>``) for profiles and escalation records
- the Realtime websocket URL, derived from the project URL
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp
import structlog

from e21alerts.core.config import HostedConfig
from e21alerts.hosted.exceptions import HostedConnectionError, HostedRequestError

logger = structlog.stdlib.get_logger()

Row = dict[str, Any]

_OPERATORS = ("eq.", "neq.", "gt.", "gte.", "lt.", "lte.", "in.", "is.", "like.", "ilike.")


def _eq_filters(filters: dict[str, Any] | None) -> dict[str, str]:
    """Turn ``{"org_id": "x"}`` into REST query params ``{"org_id": "eq.x"}``.

    Values that already carry an operator prefix (``in.(...)``, ``gte.``)
    are passed through unchanged.
    """
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if isinstance(value, bool):
            params[column] = f"eq.{str(value).lower()}"
        elif isinstance(value, (list, tuple)):
            params[column] = "in.(" + ",".join(str(v) for v in value) + ")"
        elif isinstance(value, str) and value.startswith(_OPERATORS):
            params[column] = value
        else:
            params[column] = f"eq.{value}"
    return params


class HostedClient:
    """Async client for the hosted project's REST and function endpoints.

    Usage::

        client = HostedClient(settings.hosted)
        rows = await client.select("profiles", {"organization_id": org_id})
        await client.invoke("send-email-notification", {"subject": ...})
        await client.close()
    """

    def __init__(
        self,
        config: HostedConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = config.url.rstrip("/")
        self._schema = config.schema_name
        key = config.service_key.get_secret_value() or config.anon_key.get_secret_value()
        self._api_key = key
        self._timeout = (
            aiohttp.ClientTimeout(total=config.request_timeout_secs)
            if config.request_timeout_secs
            else None
        )
        self._session = session

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def realtime_url(self) -> str:
        """Websocket endpoint of the project's Realtime service."""
        ws_base = self._base_url.replace("https://", "wss://").replace("http://", "ws://")
        return f"{ws_base}/realtime/v1/websocket?apikey={self._api_key}&vsn=1.0.0"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            if self._timeout is not None:
                self._session = aiohttp.ClientSession(timeout=self._timeout)
            else:
                self._session = aiohttp.ClientSession()
        return self._session

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept-Profile": self._schema,
            "Content-Profile": self._schema,
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
        prefer: str | None = None,
    ) -> Any:
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(prefer),
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    logger.warning(
                        "hosted_request_failed",
                        method=method,
                        url=url,
                        status=resp.status,
                        body=text[:200],
                    )
                    raise HostedRequestError(
                        f"{method} {url} returned {resp.status}",
                        status=resp.status,
                        body=text,
                    )
                if not text:
                    return None
                try:
                    return json.loads(text)
                except json.JSONDecodeError:
                    return text
        except aiohttp.ClientError as exc:
            raise HostedConnectionError(f"{method} {url} failed: {exc}") from exc

    # ── Edge Functions ──────────────────────────────────────────

    async def invoke(self, function: str, body: dict[str, Any]) -> Any:
        """Invoke a hosted function with a JSON body and return its JSON reply."""
        url = f"{self._base_url}/functions/v1/{function}"
        return await self._request("POST", url, body=body)

    # ── REST rows ───────────────────────────────────────────────

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        columns: str = "*",
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Select rows matching equality *filters*.

        Args:
            table: Table name.
            filters: Column → value (``eq``), list (``in``), or raw
                operator expression such as ``"gte.2024-01-01"``.
            columns: REST ``select`` expression.
            order: ``"column.desc"`` / ``"column.asc"``.
            limit: Maximum number of rows.
        """
        params = {"select": columns, **_eq_filters(filters)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        data = await self._request("GET", f"{self._base_url}/rest/v1/{table}", params=params)
        return list(data or [])

    async def insert(self, table: str, row: Row) -> Row | None:
        data = await self._request(
            "POST",
            f"{self._base_url}/rest/v1/{table}",
            body=row,
            prefer="return=representation",
        )
        return data[0] if data else None

    async def upsert(self, table: str, row: Row) -> Row | None:
        data = await self._request(
            "POST",
            f"{self._base_url}/rest/v1/{table}",
            body=row,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return data[0] if data else None

    async def update(
        self, table: str, filters: dict[str, Any], values: Row,
    ) -> list[Row]:
        data = await self._request(
            "PATCH",
            f"{self._base_url}/rest/v1/{table}",
            params=_eq_filters(filters),
            body=values,
            prefer="return=representation",
        )
        return list(data or [])

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        """Release the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
