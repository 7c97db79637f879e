"""Redis Pub/Sub: realtime event fan-out between the outbox relay and API processes."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from diet_chat.domain.value_objects.enums import RealtimeEvent
from diet_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

RESUBSCRIBE_DELAY_SECONDS = 2.0


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> None:
        receivers = await self._redis.publish(channel, serialize_event(event_type, payload))
        logger.debug("Published %s for message %s to %d receiver(s)", event_type, payload.get("id"), receivers)


OnEventCallback = Callable[[RealtimeEvent, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Listens to the realtime channel and hands known conversation events to `callback`.

    A dropped Redis connection is retried; events published meanwhile are lost
    and left to client polling.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
            except (RedisConnectionError, OSError):
                logger.warning(
                    "Lost Redis Pub/Sub connection, resubscribing in %.0fs",
                    RESUBSCRIBE_DELAY_SECONDS,
                    exc_info=True,
                )
                await asyncio.sleep(RESUBSCRIBE_DELAY_SECONDS)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self._handle(message["data"])
        finally:
            await pubsub.aclose()

    async def _handle(self, raw: str | bytes) -> None:
        try:
            event_type, data = deserialize_event(raw)
            event = RealtimeEvent(event_type)
        except ValueError:
            logger.warning("Dropping malformed realtime envelope")
            return
        try:
            await self._callback(event, data)
        except Exception:
            logger.exception("Error processing realtime event %s", event)
