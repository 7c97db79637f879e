from __future__ import annotations

from dataclasses import dataclass

from diet_chat.domain.value_objects.enums import SenderRole


@dataclass(frozen=True, slots=True)
class ConversationKey:
    """A thread is identified by the (client, diet) pair."""

    client_id: int
    diet_id: int

    def __str__(self) -> str:
        return f"{self.client_id}:{self.diet_id}"

    @classmethod
    def parse(cls, raw: str) -> ConversationKey:
        client_raw, _, diet_raw = raw.partition(":")
        return cls(client_id=int(client_raw), diet_id=int(diet_raw))


@dataclass(frozen=True, slots=True)
class ConversationLink:
    """The two parties owning a conversation, resolved from the client record."""

    key: ConversationKey
    client_user_id: int | None
    dietitian_user_id: int | None
    client_name: str = ""

    def role_of(self, user_id: int) -> SenderRole | None:
        if self.client_user_id is not None and user_id == self.client_user_id:
            return SenderRole.CLIENT
        if self.dietitian_user_id is not None and user_id == self.dietitian_user_id:
            return SenderRole.DIETITIAN
        return None

    def counterpart_of(self, user_id: int) -> int | None:
        role = self.role_of(user_id)
        if role is SenderRole.CLIENT:
            return self.dietitian_user_id
        if role is SenderRole.DIETITIAN:
            return self.client_user_id
        return None
