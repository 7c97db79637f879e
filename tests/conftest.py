"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator

import pytest

from diet_chat.application.dto.message import NewPhoto
from diet_chat.application.dto.principal import Principal
from diet_chat.application.repositories.outbox import OutboxRecord
from diet_chat.domain.entities.conversation import ConversationKey, ConversationLink
from diet_chat.domain.entities.message import MealPhoto, Message
from diet_chat.domain.entities.presence import PresenceRecord
from diet_chat.domain.entities.push_subscription import DeviceToken, WebPushSubscription
from diet_chat.domain.value_objects.enums import SenderRole

CLIENT_USER_ID = 10
DIETITIAN_USER_ID = 20
STRANGER_USER_ID = 99

KEY = ConversationKey(client_id=1, diet_id=7)
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def client_principal() -> Principal:
    return Principal(user_id=CLIENT_USER_ID, role=SenderRole.CLIENT)


@pytest.fixture
def dietitian_principal() -> Principal:
    return Principal(user_id=DIETITIAN_USER_ID, role=SenderRole.DIETITIAN)


@pytest.fixture
def stranger_principal() -> Principal:
    return Principal(user_id=STRANGER_USER_ID, role=SenderRole.CLIENT)


def make_link(key: ConversationKey = KEY, client_name: str = "Ayşe Yılmaz") -> ConversationLink:
    return ConversationLink(
        key=key,
        client_user_id=CLIENT_USER_ID,
        dietitian_user_id=DIETITIAN_USER_ID,
        client_name=client_name,
    )


def make_message(
    message_id: int,
    *,
    key: ConversationKey = KEY,
    sender_id: int = CLIENT_USER_ID,
    content: str = "hello",
    is_read: bool = False,
    created_at: datetime = T0,
) -> Message:
    role = SenderRole.CLIENT if sender_id == CLIENT_USER_ID else SenderRole.DIETITIAN
    return Message(
        id=message_id,
        client_id=key.client_id,
        diet_id=key.diet_id,
        sender_id=sender_id,
        sender_role=role.value,
        content=content,
        meal_tag_id=None,
        created_at=created_at,
        is_read=is_read,
        read_at=created_at if is_read else None,
    )


@dataclass
class FakeLinkReader:
    _links: dict[ConversationKey, ConversationLink] = field(default_factory=dict)

    def add(self, link: ConversationLink) -> None:
        self._links[link.key] = link

    async def get_link(self, key: ConversationKey) -> ConversationLink | None:
        return self._links.get(key)

    async def get_client_users(self, client_id: int) -> tuple[int | None, int | None] | None:
        for link in self._links.values():
            if link.key.client_id == client_id:
                return link.client_user_id, link.dietitian_user_id
        return None


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_since(
        self,
        key: ConversationKey,
        after_id: int | None,
        *,
        now: datetime,
    ) -> list[Message]:
        rows = [
            _without_expired_photos(m, now)
            for m in sorted(self._messages, key=lambda m: m.id)
            if m.key == key and (after_id is None or m.id > after_id)
        ]
        return rows

    async def get(self, key: ConversationKey, message_id: int, *, now: datetime) -> Message | None:
        for m in self._messages:
            if m.id == message_id and m.key == key:
                return _without_expired_photos(m, now)
        return None

    async def unread_by_diet(self, client_id: int, reader_id: int) -> dict[int, int]:
        counts: dict[int, int] = {}
        for m in self._messages:
            if m.client_id == client_id and not m.is_read and m.sender_id != reader_id:
                counts[m.diet_id] = counts.get(m.diet_id, 0) + 1
        return counts


def _without_expired_photos(message: Message, now: datetime) -> Message:
    return dataclasses.replace(
        message, photos=tuple(p for p in message.photos if not p.is_expired(now)),
    )


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    _next_id: int = 1
    _next_photo_id: int = 1

    async def append(
        self,
        key: ConversationKey,
        sender_id: int,
        sender_role: str,
        content: str,
        meal_tag_id: int | None,
        photos: list[NewPhoto],
        *,
        now: datetime,
        photo_expires_at: datetime,
    ) -> Message:
        stored_photos = []
        for photo in photos:
            stored_photos.append(MealPhoto(
                id=self._next_photo_id,
                image_data=photo.image_data,
                uploaded_at=now,
                expires_at=photo_expires_at,
            ))
            self._next_photo_id += 1
        message = Message(
            id=self._next_id,
            client_id=key.client_id,
            diet_id=key.diet_id,
            sender_id=sender_id,
            sender_role=sender_role,
            content=content,
            meal_tag_id=meal_tag_id,
            created_at=now,
            photos=tuple(stored_photos),
        )
        self._next_id += 1
        self._reader._messages.append(message)
        return message

    async def mark_read(
        self,
        key: ConversationKey,
        reader_id: int,
        message_ids: list[int],
        *,
        now: datetime,
    ) -> list[int]:
        changed: list[int] = []
        wanted = set(message_ids)
        for i, m in enumerate(self._reader._messages):
            if m.id in wanted and m.key == key and not m.is_read and m.sender_id != reader_id:
                self._reader._messages[i] = dataclasses.replace(m, is_read=True, read_at=now)
                changed.append(m.id)
        return sorted(changed)

    async def purge_expired_photos(self, now: datetime) -> int:
        deleted = 0
        for i, m in enumerate(self._reader._messages):
            kept = tuple(p for p in m.photos if not p.is_expired(now))
            deleted += len(m.photos) - len(kept)
            self._reader._messages[i] = dataclasses.replace(m, photos=kept)
        return deleted


@dataclass
class FakePushReader:
    _web: list[WebPushSubscription] = field(default_factory=list)
    _tokens: dict[int, str] = field(default_factory=dict)

    async def list_web_for_user(self, user_id: int) -> list[WebPushSubscription]:
        return [s for s in self._web if s.user_id == user_id]

    async def get_device_token(self, user_id: int) -> DeviceToken | None:
        token = self._tokens.get(user_id)
        return DeviceToken(user_id=user_id, token=token) if token else None


@dataclass
class FakePushWriter:
    _reader: FakePushReader
    _next_id: int = 1

    async def upsert_web(self, user_id: int, endpoint: str, p256dh: str, auth: str) -> WebPushSubscription:
        self._reader._web = [s for s in self._reader._web if s.endpoint != endpoint]
        sub = WebPushSubscription(
            id=self._next_id, user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth,
        )
        self._next_id += 1
        self._reader._web.append(sub)
        return sub

    async def delete_web_by_endpoint(self, endpoint: str, *, user_id: int | None = None) -> int:
        before = len(self._reader._web)
        self._reader._web = [
            s for s in self._reader._web
            if not (s.endpoint == endpoint and (user_id is None or s.user_id == user_id))
        ]
        return before - len(self._reader._web)

    async def set_device_token(self, user_id: int, token: str | None) -> None:
        if token is None:
            self._reader._tokens.pop(user_id, None)
        else:
            self._reader._tokens[user_id] = token


@dataclass
class FakeOutboxWriter:
    _records: list[dict[str, Any]] = field(default_factory=list)
    _pending: list[OutboxRecord] = field(default_factory=list)
    _sent: list[int] = field(default_factory=list)
    _failed: dict[int, datetime] = field(default_factory=dict)
    _dead: list[int] = field(default_factory=list)

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._records.append({"event_type": event_type, "payload": payload})

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        return self._pending[:batch_size]

    async def mark_sent(self, ids: list[int]) -> None:
        self._sent.extend(ids)

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        self._failed[record_id] = next_retry_at

    async def mark_dead(self, record_id: int) -> None:
        self._dead.append(record_id)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    links: FakeLinkReader = field(default_factory=FakeLinkReader)
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    push: FakePushReader = field(default_factory=FakePushReader)
    push_w: FakePushWriter | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    _commits: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.push_w is None:
            self.push_w = FakePushWriter(self.push)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._commits += 1

    async def rollback(self) -> None:
        pass


def uow_factory_for(uow: FakeUoW):
    """A factory yielding the same in-memory UoW, standing in for uow_scope()."""

    @asynccontextmanager
    async def _scope() -> AsyncIterator[FakeUoW]:
        yield uow

    return _scope


@dataclass
class FakePresenceStore:
    _records: dict[tuple[int, ConversationKey], PresenceRecord] = field(default_factory=dict)
    fail: bool = False

    async def upsert(self, record: PresenceRecord) -> None:
        self._records[(record.user_id, record.key)] = record

    async def get(self, user_id: int, key: ConversationKey) -> PresenceRecord | None:
        if self.fail:
            raise ConnectionError("presence store unavailable")
        return self._records.get((user_id, key))


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.links.add(make_link())
    return uow
