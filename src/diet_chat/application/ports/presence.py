from __future__ import annotations

from typing import Protocol

from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.presence import PresenceRecord


class PresenceStore(Protocol):
    async def upsert(self, record: PresenceRecord) -> None: ...

    async def get(self, user_id: int, key: ConversationKey) -> PresenceRecord | None: ...
