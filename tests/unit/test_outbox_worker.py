from __future__ import annotations

from typing import Any

import pytest

from diet_chat.application.repositories.outbox import OutboxRecord
from diet_chat.config import settings
from diet_chat.infrastructure.bus.serializer import deserialize_event, serialize_event
from diet_chat.workers.outbox_worker import process_batch
from tests.conftest import FakeUoW


class FakePublisher:
    def __init__(self, failing_ids: set[int] | None = None) -> None:
        self.published: list[tuple[str, str, dict[str, Any]]] = []
        self._failing_ids = failing_ids or set()

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> None:
        if payload.get("id") in self._failing_ids:
            raise ConnectionError("redis down")
        self.published.append((channel, event_type, payload))


def _record(record_id: int, message_id: int, attempts: int = 0) -> OutboxRecord:
    return OutboxRecord(
        id=record_id,
        event_type="message.inserted",
        payload={"id": message_id, "client_id": 1, "diet_id": 7},
        attempts=attempts,
    )


@pytest.mark.asyncio
async def test_empty_outbox_publishes_nothing():
    uow = FakeUoW()

    assert await process_batch(uow, FakePublisher()) == 0
    assert uow._committed is False


@pytest.mark.asyncio
async def test_batch_is_published_in_order_and_marked_sent():
    uow = FakeUoW()
    uow.outbox._pending = [_record(1, 10), _record(2, 11)]
    publisher = FakePublisher()

    assert await process_batch(uow, publisher) == 2

    assert [p[2]["id"] for p in publisher.published] == [10, 11]
    assert {p[0] for p in publisher.published} == {settings.REDIS_PUBSUB_CHANNEL}
    assert uow.outbox._sent == [1, 2]
    assert uow._committed is True


@pytest.mark.asyncio
async def test_failed_publish_is_scheduled_for_retry():
    uow = FakeUoW()
    uow.outbox._pending = [_record(1, 10), _record(2, 11)]

    assert await process_batch(uow, FakePublisher(failing_ids={10})) == 1

    assert uow.outbox._sent == [2]
    assert list(uow.outbox._failed) == [1]


@pytest.mark.asyncio
async def test_exhausted_records_are_skipped():
    uow = FakeUoW()
    uow.outbox._pending = [_record(1, 10, attempts=settings.OUTBOX_MAX_ATTEMPTS)]
    publisher = FakePublisher()

    assert await process_batch(uow, publisher) == 0
    assert publisher.published == []
    assert uow.outbox._sent == []
    assert uow.outbox._dead == [1]


def test_envelope_survives_serialization():
    raw = serialize_event("message.updated", {"id": 3, "is_read": True, "read_at": "2026-03-02T09:00:00+00:00"})

    assert deserialize_event(raw) == (
        "message.updated",
        {"id": 3, "is_read": True, "read_at": "2026-03-02T09:00:00+00:00"},
    )


def test_malformed_envelope_is_rejected():
    with pytest.raises(ValueError):
        deserialize_event('{"data": {}}')
