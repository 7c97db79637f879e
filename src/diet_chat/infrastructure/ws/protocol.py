"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from diet_chat.domain.entities.conversation import ConversationKey


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # subscribe | unsubscribe | ping
    data: dict[str, Any] = {}

    def conversation_key(self) -> ConversationKey:
        """Raise KeyError/ValueError/TypeError if the frame carries no usable key."""
        return ConversationKey(
            client_id=int(self.data["client_id"]),
            diet_id=int(self.data["diet_id"]),
        )


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # subscribed | message.inserted | message.updated | error | pong
    data: dict[str, Any] = {}

    @classmethod
    def frame(cls, type_: str, **data: Any) -> str:
        return cls(type=type_, data=data).model_dump_json()
