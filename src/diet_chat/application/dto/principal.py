from __future__ import annotations

from dataclasses import dataclass

from diet_chat.domain.value_objects.enums import SenderRole


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: int
    role: SenderRole

    @property
    def is_client(self) -> bool:
        return self.role == SenderRole.CLIENT

    @property
    def principal_key(self) -> str:
        """Unique key for WS connection registry."""
        return f"{self.role}:{self.user_id}"
