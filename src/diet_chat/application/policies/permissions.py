from __future__ import annotations

from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import ForbiddenError, NotFoundError
from diet_chat.application.repositories.conversation import ConversationLinkReader
from diet_chat.domain.entities.conversation import ConversationKey, ConversationLink


async def assert_conversation_access(
    principal: Principal,
    key: ConversationKey,
    links: ConversationLinkReader,
) -> ConversationLink:
    """Raise unless the caller is the linked client-user or dietitian-user."""
    link = await links.get_link(key)
    if link is None:
        raise NotFoundError("Conversation not found")

    role = link.role_of(principal.user_id)
    # A user id may be linked on one side only; the token's role must agree
    if role is None or role != principal.role:
        raise ForbiddenError("Access denied")

    return link


async def assert_client_access(
    principal: Principal,
    client_id: int,
    links: ConversationLinkReader,
) -> None:
    users = await links.get_client_users(client_id)
    if users is None:
        raise NotFoundError("Client not found")
    client_user_id, dietitian_user_id = users
    if principal.user_id not in {client_user_id, dietitian_user_id}:
        raise ForbiddenError("Forbidden")
