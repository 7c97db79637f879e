from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class MessageReadUpdated:
    id: int
    client_id: int
    diet_id: int
    is_read: bool
    read_at: datetime | None

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "diet_id": self.diet_id,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
        }
