"""Websocket change stream speaking the hosted Realtime (Phoenix channel) protocol."""

from __future__ import annotations

import asyncio
import itertools
import json
from datetime import datetime
from typing import Any

import structlog
import websockets
from websockets.asyncio.client import ClientConnection

from e21alerts.core.config import RealtimeConfig
from e21alerts.core.types import ChangeEvent, ChangeOperation, EventFilter
from e21alerts.realtime.exceptions import (
    RealtimeConnectionError,
    RealtimeSubscriptionError,
)
from e21alerts.realtime.filters import RowFilter
from e21alerts.realtime.stream import (
    ChangeHandler,
    ChangeStream,
    ChannelErrorHandler,
    ChannelHandle,
    _call,
    next_topic,
)

logger = structlog.stdlib.get_logger()


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_change_payload(payload: dict[str, Any]) -> ChangeEvent | None:
    """Convert a ``postgres_changes`` payload into a ChangeEvent.

    Returns None when the payload does not describe a row mutation.
    """
    data = payload.get("data", payload)
    if not isinstance(data, dict):
        return None
    op = str(data.get("type") or data.get("eventType") or "").upper()
    try:
        operation = ChangeOperation(op)
    except ValueError:
        return None
    record = data.get("record") or data.get("new") or {}
    old_record = data.get("old_record") or data.get("old") or {}
    return ChangeEvent(
        table=str(data.get("table", "")),
        operation=operation,
        new=record if isinstance(record, dict) else {},
        old=old_record if isinstance(old_record, dict) else {},
        schema_name=str(data.get("schema", "public")),
        commit_timestamp=_parse_timestamp(data.get("commit_timestamp")),
    )


class RealtimeChangeStream(ChangeStream):
    """Multiplexes table channels over one Realtime websocket.

    The connection is opened lazily on the first join.  A background
    reader routes ``postgres_changes`` messages to the channel's handler,
    awaiting each one before reading the next message, so events for a
    channel are handled in the order the server sends them.  A heartbeat
    keeps the socket alive.  There is no automatic reconnect: a dropped
    socket fails every open channel and pending join, and subscribers
    must re-join.

    Handlers run on the reader task, so no other frame (including the
    ``phx_reply`` to a join) is processed until a handler returns.  A
    handler must not await :meth:`open_channel` itself; such a join can
    only time out.
    """

    def __init__(self, url: str, config: RealtimeConfig | None = None) -> None:
        cfg = config or RealtimeConfig()
        self._url = cfg.url or url
        self._heartbeat_secs = cfg.heartbeat_secs
        self._join_timeout = cfg.join_timeout_secs
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._heartbeat: asyncio.Task[None] | None = None
        self._channels: dict[str, ChannelHandle] = {}
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}
        self._joining: set[str] = set()
        self._refs = itertools.count(1)
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    # ── Connection ──────────────────────────────────────────────

    async def _ensure_connected(self) -> ClientConnection:
        async with self._lock:
            if self._ws is not None:
                return self._ws
            try:
                self._ws = await websockets.connect(self._url)
            except Exception as exc:
                raise RealtimeConnectionError(
                    f"Failed to connect to realtime endpoint: {exc}",
                ) from exc
            self._reader = asyncio.create_task(self._read_loop())
            self._heartbeat = asyncio.create_task(self._heartbeat_loop(self._ws))
            logger.info("realtime_connected")
            return self._ws

    async def _send(
        self,
        topic: str,
        event: str,
        payload: dict[str, Any],
        ref: str | None = None,
    ) -> str:
        ws = await self._ensure_connected()
        return await self._write(ws, topic, event, payload, ref)

    async def _write(
        self,
        ws: ClientConnection,
        topic: str,
        event: str,
        payload: dict[str, Any],
        ref: str | None = None,
    ) -> str:
        ref = ref or str(next(self._refs))
        message = {"topic": topic, "event": event, "payload": payload, "ref": ref}
        if event == "phx_join":
            message["join_ref"] = ref
        await ws.send(json.dumps(message))
        return ref

    async def _heartbeat_loop(self, ws: ClientConnection) -> None:
        # Bound to one socket; never reconnects.
        while self._ws is ws:
            try:
                await asyncio.sleep(self._heartbeat_secs)
                if self._ws is not ws:
                    break
                await self._write(ws, "phoenix", "heartbeat", {})
            except asyncio.CancelledError:
                break
            except Exception:
                logger.warning("realtime_heartbeat_failed")
                break

    async def _read_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for raw in ws:
                await self._handle_message(raw)
        except asyncio.CancelledError:
            return
        except Exception as exc:
            logger.warning("realtime_socket_error", error=str(exc))
            await self._fail_all(RealtimeConnectionError(f"socket error: {exc}"))
            return
        if self._ws is not None:
            await self._fail_all(RealtimeConnectionError("socket closed by server"))

    async def _handle_message(self, raw: str | bytes) -> None:
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("realtime_invalid_json", raw=str(raw)[:200])
            return

        topic = str(msg.get("topic", ""))
        event = msg.get("event")
        payload = msg.get("payload") or {}
        ref = msg.get("ref")

        if event == "phx_reply" and ref in self._pending:
            future = self._pending.pop(ref)
            if not future.done():
                future.set_result(payload)
            return

        handle = self._channels.get(topic.removeprefix("realtime:"))
        if handle is None or handle.closed:
            return

        if event == "postgres_changes":
            change = parse_change_payload(payload)
            if change is not None and handle.accepts(change):
                try:
                    await _call(handle.handler, change)
                except Exception:
                    logger.exception("realtime_handler_error", topic=handle.topic)
        elif event in ("phx_error", "phx_close", "system") and _is_channel_error(event, payload):
            await self._fail_channel(
                handle, RealtimeSubscriptionError(f"channel {handle.topic} {event}"),
            )

    async def _fail_channel(self, handle: ChannelHandle, error: Exception) -> None:
        handle.closed = True
        self._channels.pop(handle.topic, None)
        if handle.on_error is not None:
            await _call(handle.on_error, error)

    async def _fail_all(self, error: Exception) -> None:
        ws, self._ws = self._ws, None
        heartbeat, self._heartbeat = self._heartbeat, None
        if heartbeat is not None:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
        if ws is not None:
            try:
                await ws.close()
            except Exception:
                logger.warning("realtime_close_failed")

        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

        # In-flight joins get the error from open_channel instead.
        for handle in list(self._channels.values()):
            if handle.topic in self._joining:
                self._channels.pop(handle.topic, None)
                continue
            await self._fail_channel(handle, error)

    # ── Channels ────────────────────────────────────────────────

    async def open_channel(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        event_filter: EventFilter = EventFilter.ANY,
        row_filter: RowFilter | None = None,
        on_error: ChannelErrorHandler | None = None,
    ) -> ChannelHandle:
        handle = ChannelHandle(
            topic=next_topic(table),
            table=table,
            event_filter=event_filter,
            row_filter=row_filter,
            handler=handler,
            on_error=on_error,
        )
        change_config: dict[str, Any] = {
            "event": event_filter.value,
            "schema": handle.schema_name,
            "table": table,
        }
        if row_filter is not None:
            change_config["filter"] = str(row_filter)

        self._channels[handle.topic] = handle
        loop = asyncio.get_running_loop()
        future: asyncio.Future[dict[str, Any]] = loop.create_future()
        ref = str(next(self._refs))
        self._pending[ref] = future
        self._joining.add(handle.topic)
        try:
            await self._send(
                f"realtime:{handle.topic}",
                "phx_join",
                {"config": {"postgres_changes": [change_config]}},
                ref=ref,
            )
            reply = await asyncio.wait_for(future, timeout=self._join_timeout)
        except TimeoutError as exc:
            self._channels.pop(handle.topic, None)
            self._pending.pop(ref, None)
            raise RealtimeSubscriptionError(f"join timed out for {table}") from exc
        except Exception:
            self._channels.pop(handle.topic, None)
            self._pending.pop(ref, None)
            raise
        finally:
            self._joining.discard(handle.topic)

        if reply.get("status") != "ok":
            self._channels.pop(handle.topic, None)
            raise RealtimeSubscriptionError(
                f"join rejected for {table}: {reply.get('response')}",
            )
        return handle

    async def close_channel(self, handle: ChannelHandle) -> None:
        if handle.closed:
            return
        handle.closed = True
        self._channels.pop(handle.topic, None)
        if self._ws is None:
            return
        try:
            await self._send(f"realtime:{handle.topic}", "phx_leave", {})
        except Exception:
            logger.warning("realtime_leave_failed", topic=handle.topic)

    async def close(self) -> None:
        """Leave every channel and close the socket."""
        for handle in list(self._channels.values()):
            await self.close_channel(handle)
        for task in (self._heartbeat, self._reader):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._heartbeat = None
        self._reader = None
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()


def _is_channel_error(event: str, payload: dict[str, Any]) -> bool:
    if event in ("phx_error", "phx_close"):
        return True
    return str(payload.get("status", "")).lower() == "error"
