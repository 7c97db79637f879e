from __future__ import annotations

from typing import Protocol

from diet_chat.domain.entities.conversation import ConversationKey, ConversationLink


class ConversationLinkReader(Protocol):
    """Read side of the client-record collaborator."""

    async def get_link(self, key: ConversationKey) -> ConversationLink | None: ...

    async def get_client_users(self, client_id: int) -> tuple[int | None, int | None] | None:
        """Return (client_user_id, dietitian_user_id) or None if the client is unknown."""
        ...
