from __future__ import annotations

from datetime import datetime
from typing import Protocol

from diet_chat.application.dto.message import NewPhoto
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_since(
        self,
        key: ConversationKey,
        after_id: int | None,
        *,
        now: datetime,
    ) -> list[Message]:
        """Ascending by id, `after_id` exclusive, non-expired photos only."""
        ...

    async def get(self, key: ConversationKey, message_id: int, *, now: datetime) -> Message | None: ...

    async def unread_by_diet(self, client_id: int, reader_id: int) -> dict[int, int]: ...


class MessageWriter(Protocol):
    async def append(
        self,
        key: ConversationKey,
        sender_id: int,
        sender_role: str,
        content: str,
        meal_tag_id: int | None,
        photos: list[NewPhoto],
        *,
        now: datetime,
        photo_expires_at: datetime,
    ) -> Message:
        """Insert the message and its photos. The store assigns the id."""
        ...

    async def mark_read(
        self,
        key: ConversationKey,
        reader_id: int,
        message_ids: list[int],
        *,
        now: datetime,
    ) -> list[int]:
        """Flip unread, not-self-authored rows among `message_ids`. Return the ids changed."""
        ...

    async def purge_expired_photos(self, now: datetime) -> int: ...
