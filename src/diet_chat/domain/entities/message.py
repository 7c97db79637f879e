from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from diet_chat.domain.entities.conversation import ConversationKey


@dataclass(frozen=True, slots=True)
class MealPhoto:
    id: int
    image_data: str
    uploaded_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    client_id: int
    diet_id: int
    sender_id: int
    sender_role: str
    content: str
    meal_tag_id: int | None
    created_at: datetime
    is_read: bool = False
    read_at: datetime | None = None
    photos: tuple[MealPhoto, ...] = field(default_factory=tuple)

    @property
    def key(self) -> ConversationKey:
        return ConversationKey(self.client_id, self.diet_id)
