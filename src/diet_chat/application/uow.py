from __future__ import annotations

from typing import AsyncContextManager, Callable, Protocol

from diet_chat.application.repositories.conversation import ConversationLinkReader
from diet_chat.application.repositories.message import MessageReader, MessageWriter
from diet_chat.application.repositories.outbox import OutboxWriter
from diet_chat.application.repositories.push_subscription import (
    PushSubscriptionReader,
    PushSubscriptionWriter,
)


class UnitOfWork(Protocol):
    links: ConversationLinkReader
    messages: MessageReader
    messages_w: MessageWriter
    push: PushSubscriptionReader
    push_w: PushSubscriptionWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UnitOfWorkFactory = Callable[[], AsyncContextManager[UnitOfWork]]
