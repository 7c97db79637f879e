from __future__ import annotations

import logging
from datetime import timedelta

from diet_chat.application.dto.principal import Principal
from diet_chat.application.ports.clock import Clock, system_clock
from diet_chat.application.ports.presence import PresenceStore
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.presence import PresenceRecord

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Per-user, per-conversation activity flag with a short liveness window."""

    def __init__(
        self,
        store: PresenceStore,
        *,
        ttl_seconds: int = 30,
        clock: Clock = system_clock,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    async def heartbeat(
        self,
        principal: Principal,
        key: ConversationKey,
        is_active: bool,
        source: str | None = None,
    ) -> PresenceRecord:
        record = PresenceRecord(
            user_id=principal.user_id,
            key=key,
            is_active=bool(is_active),
            last_active_at=self._clock.now(),
            source=source,
        )
        await self._store.upsert(record)
        return record

    async def get(self, user_id: int, key: ConversationKey) -> PresenceRecord | None:
        return await self._store.get(user_id, key)

    async def is_active(self, user_id: int, key: ConversationKey) -> bool:
        """True only for an active record refreshed within the TTL.

        Missing, stale or unreadable presence counts as inactive, so the
        recipient gets notified rather than silently skipped.
        """
        try:
            record = await self._store.get(user_id, key)
        except Exception:
            logger.warning("Presence lookup failed for user %d in %s", user_id, key, exc_info=True)
            return False
        if record is None:
            return False
        return record.is_live(self._clock.now(), self._ttl)
