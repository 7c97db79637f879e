from __future__ import annotations

import json

import pytest

from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.infrastructure.ws.manager import ConnectionManager
from diet_chat.infrastructure.ws.protocol import WsInbound
from tests.conftest import KEY


class FakeSocket:
    def __init__(self, broken: bool = False) -> None:
        self.accepted = False
        self.frames: list[dict] = []
        self._broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, raw: str) -> None:
        if self._broken:
            raise RuntimeError("socket closed")
        self.frames.append(json.loads(raw))


@pytest.mark.asyncio
async def test_broadcast_reaches_only_subscribers_of_the_conversation():
    manager = ConnectionManager()
    watching, elsewhere = FakeSocket(), FakeSocket()
    for ws in (watching, elsewhere):
        await manager.connect(ws)
    manager.subscribe(watching, KEY)
    manager.subscribe(elsewhere, ConversationKey(KEY.client_id, 8))

    await manager.broadcast_to_conversation(KEY, "message.inserted", {"id": 5, "client_id": 1, "diet_id": 7})

    assert watching.frames == [{"type": "message.inserted", "data": {"id": 5, "client_id": 1, "diet_id": 7}}]
    assert elsewhere.frames == []


@pytest.mark.asyncio
async def test_dead_socket_is_dropped_on_broadcast():
    manager = ConnectionManager()
    alive, dead = FakeSocket(), FakeSocket(broken=True)
    for ws in (alive, dead):
        await manager.connect(ws)
        manager.subscribe(ws, KEY)

    await manager.broadcast_to_conversation(KEY, "message.updated", {"id": 1})

    assert manager.subscriber_count(KEY) == 1
    assert len(alive.frames) == 1


@pytest.mark.asyncio
async def test_unsubscribe_and_disconnect():
    manager = ConnectionManager()
    ws = FakeSocket()
    await manager.connect(ws)
    manager.subscribe(ws, KEY)
    manager.unsubscribe(ws, KEY)
    assert manager.subscriber_count(KEY) == 0

    manager.subscribe(ws, KEY)
    manager.disconnect(ws)
    assert manager.subscriber_count(KEY) == 0


def test_inbound_frame_parses_conversation_key():
    frame = WsInbound.model_validate_json('{"type": "subscribe", "data": {"client_id": "1", "diet_id": 7}}')

    assert frame.conversation_key() == KEY


def test_inbound_frame_without_key_raises():
    frame = WsInbound(type="subscribe")

    with pytest.raises(KeyError):
        frame.conversation_key()
