from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from diet_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)

MarkReadCall = Callable[[list[int]], Awaitable[int]]
MarkedCallback = Callable[[list[int]], None]


class ReadReceiptBatcher:
    """Debounces read receipts for newly visible messages into one call.

    Only messages authored by the other party and still unread are
    eligible. Ids already submitted or acknowledged are never sent again,
    so offering overlapping batches is harmless.
    """

    def __init__(
        self,
        viewer_id: int,
        mark_read: MarkReadCall,
        *,
        dwell: float = 1.5,
        on_marked: MarkedCallback | None = None,
    ) -> None:
        self._viewer_id = viewer_id
        self._mark_read = mark_read
        self._dwell = dwell
        self._on_marked = on_marked
        self._pending: set[int] = set()
        self._in_flight: set[int] = set()
        self._acknowledged: set[int] = set()
        self._timer: asyncio.Task[None] | None = None

    @property
    def pending(self) -> frozenset[int]:
        return frozenset(self._pending)

    def eligible(self, messages: Iterable[Message]) -> list[int]:
        return [
            m.id
            for m in messages
            if m.sender_id != self._viewer_id
            and not m.is_read
            and m.id not in self._in_flight
            and m.id not in self._acknowledged
        ]

    def offer(self, messages: Iterable[Message]) -> None:
        """Queue eligible ids and restart the dwell timer."""
        ids = self.eligible(messages)
        if not ids:
            return
        self._pending.update(ids)
        self._restart_timer()

    async def flush(self) -> list[int]:
        """Send everything pending now. Returns the ids submitted."""
        self._cancel_timer()
        return await self._submit()

    def discard(self) -> None:
        """Forget queued ids that have not been submitted yet."""
        self._cancel_timer()
        self._pending.clear()

    async def close(self) -> None:
        self.discard()

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(self._fire_after_dwell(), name="read-receipt-dwell")

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            if self._timer is not asyncio.current_task():
                self._timer.cancel()
        self._timer = None

    async def _fire_after_dwell(self) -> None:
        await asyncio.sleep(self._dwell)
        self._timer = None
        await self._submit()

    async def _submit(self) -> list[int]:
        ids = sorted(self._pending)
        self._pending.clear()
        if not ids:
            return []

        self._in_flight.update(ids)
        try:
            marked = await self._mark_read(ids)
        except Exception:
            logger.warning("Marking %d message(s) as read failed", len(ids), exc_info=True)
            # let a later offer retry them
            self._in_flight.difference_update(ids)
            return []

        self._in_flight.difference_update(ids)
        self._acknowledged.update(ids)
        logger.debug("Marked %d of %d message(s) as read", marked, len(ids))
        if self._on_marked is not None:
            self._on_marked(ids)
        return ids
