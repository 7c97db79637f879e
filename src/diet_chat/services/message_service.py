from __future__ import annotations

from datetime import timedelta

from diet_chat.application.dto.message import FetchResult, NewPhoto, UnreadSummary
from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from diet_chat.application.policies.permissions import (
    assert_client_access,
    assert_conversation_access,
)
from diet_chat.application.ports.clock import Clock, system_clock
from diet_chat.application.uow import UnitOfWork
from diet_chat.domain.entities.conversation import ConversationKey, ConversationLink
from diet_chat.domain.entities.message import Message
from diet_chat.domain.events.message_created import MessageInserted
from diet_chat.domain.value_objects.enums import RealtimeEvent, SenderRole

PHOTO_TTL = timedelta(hours=12)


async def append_message(
    key: ConversationKey,
    principal: Principal,
    content: str | None,
    meal_tag_id: int | None,
    photos: list[NewPhoto],
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
    photo_ttl: timedelta = PHOTO_TTL,
) -> tuple[Message, ConversationLink]:
    """Persist a message and queue its realtime insert event in one transaction.

    Returns the hydrated message together with the conversation link so the
    caller can hand both to the notification dispatcher after commit.
    """
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message content required")

    link = await assert_conversation_access(principal, key, uow.links)

    if photos and principal.role != SenderRole.CLIENT:
        raise ForbiddenError("Only clients can send photos")

    now = clock.now()
    message = await uow.messages_w.append(
        key,
        principal.user_id,
        principal.role.value,
        text,
        meal_tag_id,
        photos,
        now=now,
        photo_expires_at=now + photo_ttl,
    )
    event = MessageInserted(id=message.id, client_id=key.client_id, diet_id=key.diet_id)
    await uow.outbox.add(RealtimeEvent.MESSAGE_INSERTED, event.to_payload())
    await uow.commit()
    return message, link


async def fetch_since(
    key: ConversationKey,
    principal: Principal,
    after_id: int | None,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> FetchResult:
    """Messages with id > after_id (all when None), ascending.

    The unread count is only computed for a full, non-incremental fetch.
    """
    if after_id is not None and after_id < 0:
        raise ValidationError("Invalid afterId")
    await assert_conversation_access(principal, key, uow.links)

    messages = await uow.messages.list_since(key, after_id, now=clock.now())
    if after_id is not None:
        return FetchResult(messages=messages)

    unread = sum(1 for m in messages if not m.is_read and m.sender_id != principal.user_id)
    return FetchResult(messages=messages, unread_count=unread)


async def fetch_one(
    key: ConversationKey,
    principal: Principal,
    message_id: int,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> Message:
    await assert_conversation_access(principal, key, uow.links)
    message = await uow.messages.get(key, message_id, now=clock.now())
    if message is None:
        raise NotFoundError("Message not found")
    return message


async def unread_summary(
    client_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> UnreadSummary:
    await assert_client_access(principal, client_id, uow.links)
    by_diet = await uow.messages.unread_by_diet(client_id, principal.user_id)
    by_diet = {diet_id: count for diet_id, count in by_diet.items() if count > 0}
    return UnreadSummary(total_unread=sum(by_diet.values()), unread_by_diet=by_diet)


async def purge_expired_photos(uow: UnitOfWork, *, clock: Clock = system_clock) -> int:
    deleted = await uow.messages_w.purge_expired_photos(clock.now())
    await uow.commit()
    return deleted
