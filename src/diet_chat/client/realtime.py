"""Realtime subscription to one conversation over the service WebSocket."""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from diet_chat.application.exceptions import TransportError
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.value_objects.enums import RealtimeEvent

logger = logging.getLogger(__name__)

InsertHandler = Callable[[int], Awaitable[None]]
UpdateHandler = Callable[[int, bool, "datetime | None"], Awaitable[None]]
LostHandler = Callable[[], Awaitable[None]]


class RealtimeTransport(Protocol):
    async def subscribe(
        self,
        on_insert: InsertHandler,
        on_update: UpdateHandler,
        on_lost: LostHandler,
    ) -> None:
        """Resolve once the server confirmed the subscription; raise TransportError otherwise."""
        ...

    async def close(self) -> None: ...


class RealtimeChannel:
    def __init__(
        self,
        ws_url: str,
        token: str,
        key: ConversationKey,
        *,
        handshake_timeout: float = 10.0,
    ) -> None:
        self._url = f"{ws_url.rstrip('/')}/ws/conversations?{urlencode({'token': token})}"
        self._key = key
        self._handshake_timeout = handshake_timeout
        self._ws: Any = None
        self._reader: asyncio.Task[None] | None = None
        self._closing = False

    async def subscribe(
        self,
        on_insert: InsertHandler,
        on_update: UpdateHandler,
        on_lost: LostHandler,
    ) -> None:
        try:
            self._ws = await websockets.connect(self._url, open_timeout=self._handshake_timeout)
            await self._ws.send(json.dumps({
                "type": "subscribe",
                "data": {"client_id": self._key.client_id, "diet_id": self._key.diet_id},
            }))
            await asyncio.wait_for(self._await_confirmation(), self._handshake_timeout)
        except (OSError, ValueError, WebSocketException, asyncio.TimeoutError) as exc:
            await self._drop()
            raise TransportError(f"Realtime subscribe to {self._key} failed: {exc}") from exc
        except TransportError:
            await self._drop()
            raise

        self._reader = asyncio.create_task(
            self._read_loop(on_insert, on_update, on_lost), name=f"realtime-{self._key}",
        )
        logger.info("Realtime subscribed to %s", self._key)

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            try:
                await self._ws.send(json.dumps({
                    "type": "unsubscribe",
                    "data": {"client_id": self._key.client_id, "diet_id": self._key.diet_id},
                }))
            except (OSError, WebSocketException):
                pass
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None
        await self._drop()

    async def _await_confirmation(self) -> None:
        while True:
            frame = json.loads(await self._ws.recv())
            if not isinstance(frame, dict):
                raise ValueError(f"Unexpected handshake frame: {frame!r}")
            if frame.get("type") == "subscribed":
                return
            if frame.get("type") == "error":
                raise TransportError(f"Subscribe rejected: {frame.get('data')}")

    async def _read_loop(
        self,
        on_insert: InsertHandler,
        on_update: UpdateHandler,
        on_lost: LostHandler,
    ) -> None:
        try:
            async for raw in self._ws:
                await self._handle_frame(raw, on_insert, on_update)
        except ConnectionClosed:
            pass
        if not self._closing:
            logger.warning("Realtime connection for %s lost", self._key)
            await on_lost()

    async def _handle_frame(
        self,
        raw: str | bytes,
        on_insert: InsertHandler,
        on_update: UpdateHandler,
    ) -> None:
        try:
            frame = json.loads(raw)
            data = frame.get("data") or {}
            if ConversationKey(int(data["client_id"]), int(data["diet_id"])) != self._key:
                return
            message_id = int(data["id"])
        except (ValueError, KeyError, TypeError, AttributeError):
            return

        if frame["type"] == RealtimeEvent.MESSAGE_INSERTED:
            await on_insert(message_id)
        elif frame["type"] == RealtimeEvent.MESSAGE_UPDATED:
            read_at = data.get("read_at")
            await on_update(
                message_id,
                bool(data.get("is_read")),
                datetime.fromisoformat(read_at) if read_at else None,
            )

    async def _drop(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException):
                pass
