from __future__ import annotations

from datetime import datetime

from diet_chat.api.v1.schemas.common import CamelModel, SuccessResponse


class ConversationKeyIn(CamelModel):
    client_id: int
    diet_id: int


class PresenceRequest(CamelModel):
    conversation_key: ConversationKeyIn
    is_active: bool
    source: str | None = None


class PresenceOut(CamelModel):
    user_id: int
    client_id: int
    diet_id: int
    is_active: bool
    source: str | None
    last_active_at: datetime


class PresenceStatusResponse(SuccessResponse):
    is_active: bool
    record: PresenceOut | None = None
