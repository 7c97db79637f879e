from __future__ import annotations

from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import ValidationError
from diet_chat.application.policies.permissions import assert_conversation_access
from diet_chat.application.ports.clock import Clock, system_clock
from diet_chat.application.uow import UnitOfWork
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.events.message_updated import MessageReadUpdated
from diet_chat.domain.value_objects.enums import RealtimeEvent


def _validate_ids(message_ids: object) -> list[int]:
    if not isinstance(message_ids, list) or not message_ids:
        raise ValidationError("messageIds array is required")
    ids: list[int] = []
    for raw in message_ids:
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise ValidationError("messageIds must be positive integers")
        ids.append(raw)
    return sorted(set(ids))


async def mark_read(
    key: ConversationKey,
    principal: Principal,
    message_ids: object,
    uow: UnitOfWork,
    *,
    clock: Clock = system_clock,
) -> int:
    """Flip isRead on the other party's unread messages among `message_ids`.

    Own messages and already-read rows are left untouched, so repeating a
    call returns 0.
    """
    ids = _validate_ids(message_ids)
    await assert_conversation_access(principal, key, uow.links)

    now = clock.now()
    changed = await uow.messages_w.mark_read(key, principal.user_id, ids, now=now)
    for message_id in changed:
        event = MessageReadUpdated(
            id=message_id,
            client_id=key.client_id,
            diet_id=key.diet_id,
            is_read=True,
            read_at=now,
        )
        await uow.outbox.add(RealtimeEvent.MESSAGE_UPDATED, event.to_payload())
    await uow.commit()
    return len(changed)
