from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MessageInserted:
    id: int
    client_id: int
    diet_id: int

    def to_payload(self) -> dict[str, int]:
        return {"id": self.id, "client_id": self.client_id, "diet_id": self.diet_id}
