"""Presence records as short-lived Redis hashes, one per (user, conversation)."""
from __future__ import annotations

from datetime import datetime, timezone

import redis.asyncio as aioredis

from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.presence import PresenceRecord


class RedisPresenceStore:
    """Implements application.ports.presence.PresenceStore.

    The key expiry only bounds memory; liveness is decided by comparing
    `last_active_at` with the presence TTL at read time.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        *,
        prefix: str = "presence",
        retention_seconds: int = 3600,
    ) -> None:
        self._redis = redis
        self._prefix = prefix
        self._retention = retention_seconds

    def _name(self, user_id: int, key: ConversationKey) -> str:
        return f"{self._prefix}:{user_id}:{key.client_id}:{key.diet_id}"

    async def upsert(self, record: PresenceRecord) -> None:
        name = self._name(record.user_id, record.key)
        mapping = {
            "is_active": "1" if record.is_active else "0",
            "last_active_at": str(int(record.last_active_at.timestamp() * 1000)),
            "source": record.source or "",
        }
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(name, mapping=mapping)
            pipe.expire(name, self._retention)
            await pipe.execute()

    async def get(self, user_id: int, key: ConversationKey) -> PresenceRecord | None:
        raw = await self._redis.hgetall(self._name(user_id, key))
        if not raw:
            return None
        try:
            last_active_ms = int(raw["last_active_at"])
        except (KeyError, ValueError):
            return None
        return PresenceRecord(
            user_id=user_id,
            key=key,
            is_active=raw.get("is_active") == "1",
            last_active_at=datetime.fromtimestamp(last_active_ms / 1000, tz=timezone.utc),
            source=raw.get("source") or None,
        )
