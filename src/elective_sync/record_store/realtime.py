# SPDX-License-Identifier: MIT
"""Realtime change subscriptions over the hosted database's websocket.

The server speaks the Phoenix channel protocol: each subscription is a
channel joined with a ``postgres_changes`` config, the socket must be kept
alive with heartbeats, and row changes arrive as ``postgres_changes``
events on the channel's topic.
"""

import asyncio
import itertools
import json
from typing import Any

import aiohttp

from ..constants import (
    DEFAULT_REALTIME_HEARTBEAT_SECONDS,
    DEFAULT_REALTIME_RECONNECT_DELAY,
    DEFAULT_REALTIME_RECONNECT_RETRIES,
    REALTIME_PROTOCOL_VERSION,
)
from ..logging_config import get_detail_logger
from ..models import ChangeNotification
from ..retry_utils import call_with_backoff
from .filters import Filter
from .protocols import ChangeHandler, SubscriptionHandle


detail_logger = get_detail_logger()


class RealtimeClient:
    """Client for row-level change notifications.

    When the socket drops without :meth:`close` being called, the reader
    reconnects with backoff and joins every open channel again.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        schema: str = "public",
        heartbeat_seconds: float = DEFAULT_REALTIME_HEARTBEAT_SECONDS,
        reconnect_retries: int = DEFAULT_REALTIME_RECONNECT_RETRIES,
        reconnect_delay: float = DEFAULT_REALTIME_RECONNECT_DELAY,
    ):
        """Initialize the realtime client.

        Args:
            url: Project URL (http or https)
            api_key: API key sent with the socket and each channel join
            schema: Database schema to watch
            heartbeat_seconds: Interval between heartbeats
            reconnect_retries: Reconnect attempts after the first one fails
            reconnect_delay: Delay before the first reconnect retry in seconds
        """
        base = url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://") :]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://") :]
        self.socket_url = f"{base}/realtime/v1/websocket"
        self.api_key = api_key
        self.schema = schema
        self.heartbeat_seconds = heartbeat_seconds
        self.reconnect_retries = reconnect_retries
        self.reconnect_delay = reconnect_delay

        self._closing = False
        self.session: aiohttp.ClientSession | None = None
        self.ws: aiohttp.ClientWebSocketResponse | None = None
        self._channels: dict[str, tuple[SubscriptionHandle, ChangeHandler]] = {}
        self._refs = itertools.count(1)
        self._handle_ids = itertools.count(1)
        self._reader_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> "RealtimeClient":
        await self.connect()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return self.ws is not None and not self.ws.closed

    async def connect(self) -> None:
        """Open the websocket and start the reader and heartbeat tasks."""
        if self.connected:
            return
        self._closing = False
        await self._open_socket()
        self._start_tasks()

    async def _open_socket(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession()

        detail_logger.debug(f"Connecting realtime socket {self.socket_url}")
        self.ws = await self.session.ws_connect(
            self.socket_url,
            params={"apikey": self.api_key, "vsn": REALTIME_PROTOCOL_VERSION},
        )

    def _start_tasks(self) -> None:
        self._reader_task = asyncio.create_task(self._read_loop())
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    async def close(self) -> None:
        """Leave every channel and close the socket."""
        self._closing = True
        for handle, _ in list(self._channels.values()):
            await self.unsubscribe(handle)

        await _cancel(self._heartbeat_task)
        await _cancel(self._reader_task)
        self._heartbeat_task = None
        self._reader_task = None

        if self.ws is not None:
            await self.ws.close()
            self.ws = None
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def _reconnect(self) -> None:
        """Open a new socket and join every open channel on it again.

        Gives up, leaving the client disconnected, once the retries are
        spent; the next :meth:`subscribe` connects afresh.
        """
        await _cancel(self._heartbeat_task)
        self._heartbeat_task = None
        self.ws = None

        try:
            await call_with_backoff(
                self._open_socket,
                max_retries=self.reconnect_retries,
                initial_delay=self.reconnect_delay,
                retry_on=(aiohttp.ClientError, OSError),
                description="realtime reconnect",
            )
        except (aiohttp.ClientError, OSError) as e:
            detail_logger.warning(
                f"Realtime reconnect failed, {len(self._channels)} channels lost: {e}"
            )
            return

        try:
            for topic, (handle, _) in list(self._channels.items()):
                await self._send(
                    topic, "phx_join", self.join_payload(handle.table, handle.filter)
                )
        except (ConnectionError, aiohttp.ClientError) as e:
            detail_logger.warning(f"Rejoining realtime channels failed: {e}")
            if self.ws is not None:
                await self.ws.close()
                self.ws = None
            return
        detail_logger.info(f"Realtime socket reconnected, rejoined {len(self._channels)} channels")
        self._start_tasks()

    def join_payload(self, table: str, filter: Filter | None) -> dict[str, Any]:
        """Build the ``phx_join`` payload for one table subscription."""
        change: dict[str, Any] = {"event": "*", "schema": self.schema, "table": table}
        if filter is not None:
            change["filter"] = str(filter)
        return {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [change],
            },
            "access_token": self.api_key,
        }

    async def subscribe(
        self, table: str, filter: Filter | None, on_change: ChangeHandler
    ) -> SubscriptionHandle:
        """Join a channel for changes on ``table`` matching ``filter``."""
        await self.connect()

        handle_id = next(self._handle_ids)
        topic = f"realtime:{table}-changes-{handle_id}"
        handle = SubscriptionHandle(id=handle_id, table=table, filter=filter, topic=topic)
        self._channels[topic] = (handle, on_change)

        await self._send(topic, "phx_join", self.join_payload(table, filter))
        detail_logger.debug(f"Joined {topic} (filter={filter})")
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Leave the channel behind ``handle``; unknown handles are ignored."""
        if self._channels.pop(handle.topic, None) is None:
            return
        if self.connected:
            await self._send(handle.topic, "phx_leave", {})
        detail_logger.debug(f"Left {handle.topic}")

    async def _send(self, topic: str, event: str, payload: dict[str, Any]) -> None:
        if self.ws is None:
            raise ConnectionError("Realtime socket is not connected")
        ref = str(next(self._refs))
        await self.ws.send_json(
            {"topic": topic, "event": event, "payload": payload, "ref": ref}
        )

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            try:
                await self._send("phoenix", "heartbeat", {})
            except (ConnectionError, aiohttp.ClientError) as e:
                detail_logger.warning(f"Realtime heartbeat failed: {e}")
                # closing ends the reader, which reconnects
                if self.ws is not None:
                    await self.ws.close()
                return

    async def _read_loop(self) -> None:
        if self.ws is None:
            return
        try:
            async for msg in self.ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        message = json.loads(msg.data)
                    except json.JSONDecodeError:
                        detail_logger.warning(
                            f"Ignoring malformed realtime frame: {msg.data!r}"
                        )
                        continue
                    await self.handle_message(message)
                elif msg.type in (aiohttp.WSMsgType.ERROR, aiohttp.WSMsgType.CLOSED):
                    detail_logger.warning(f"Realtime socket closed: {msg.type.name}")
                    break
        except aiohttp.ClientError as e:
            detail_logger.warning(f"Realtime socket failed: {e}")

        if not self._closing:
            await self._reconnect()

    async def handle_message(self, message: dict[str, Any]) -> None:
        """Dispatch one decoded server message.

        Handler errors are logged so one failing view cannot stop delivery
        to the others.
        """
        topic = message.get("topic", "")
        event = message.get("event")
        payload = message.get("payload") or {}

        if event == "phx_reply":
            if payload.get("status") != "ok":
                detail_logger.warning(f"Realtime request on {topic} failed: {payload}")
            return

        if event in ("phx_error", "phx_close"):
            detail_logger.warning(f"Realtime channel {topic} reported {event}")
            return

        if event != "postgres_changes":
            detail_logger.debug(f"Ignoring realtime event {event} on {topic}")
            return

        channel = self._channels.get(topic)
        if channel is None:
            detail_logger.debug(f"Change for unknown topic {topic} dropped")
            return

        try:
            notification = ChangeNotification.from_realtime_payload(payload["data"])
        except (KeyError, ValueError) as e:
            detail_logger.warning(f"Malformed change notification on {topic}: {e}")
            return

        _, handler = channel
        try:
            await handler(notification)
        except Exception as e:
            detail_logger.exception(f"Change handler for {topic} failed: {e}")


async def _cancel(task: asyncio.Task[None] | None) -> None:
    """Cancel ``task`` and wait for it, unless it is the running task."""
    if task is None or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
