from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from diet_chat.domain.entities.conversation import ConversationKey


@dataclass(frozen=True, slots=True)
class PresenceRecord:
    user_id: int
    key: ConversationKey
    is_active: bool
    last_active_at: datetime
    source: str | None = None

    def is_live(self, now: datetime, ttl: timedelta) -> bool:
        return self.is_active and now - self.last_active_at <= ttl
