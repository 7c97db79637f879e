"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks sockets and the conversations each socket listens to.

    Subscriptions are per socket, not per principal: two tabs of the same
    user may watch different conversations.
    """

    def __init__(self) -> None:
        self._sockets: set[WebSocket] = set()
        self._subscriptions: dict[ConversationKey, set[WebSocket]] = {}

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._sockets.add(ws)
        logger.debug("WS connected (total=%d)", len(self._sockets))

    def disconnect(self, ws: WebSocket) -> None:
        self._sockets.discard(ws)
        for key in list(self._subscriptions):
            subs = self._subscriptions[key]
            subs.discard(ws)
            if not subs:
                del self._subscriptions[key]
        logger.debug("WS disconnected (total=%d)", len(self._sockets))

    def subscribe(self, ws: WebSocket, key: ConversationKey) -> None:
        self._subscriptions.setdefault(key, set()).add(ws)

    def unsubscribe(self, ws: WebSocket, key: ConversationKey) -> None:
        subs = self._subscriptions.get(key)
        if subs:
            subs.discard(ws)
            if not subs:
                del self._subscriptions[key]

    def subscriber_count(self, key: ConversationKey) -> int:
        return len(self._subscriptions.get(key, ()))

    async def broadcast_to_conversation(
        self,
        key: ConversationKey,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        """Send a realtime event to every socket subscribed to the conversation."""
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        dead: list[WebSocket] = []
        for ws in list(self._subscriptions.get(key, ())):
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
