"""Client-side synchronization of one conversation.

State machine::

    IDLE -> HYDRATING -> LIVE     (realtime subscription confirmed)
                      -> POLLING  (subscribe failed or the transport dropped)
    any  -> CLOSED

Once in POLLING the session stays there until closed. Every arrival
path funnels through `merge_messages`, so the local list is always
ascending by id with no duplicates, whichever path delivers first.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from diet_chat.application.exceptions import TransportError
from diet_chat.application.ports.clock import Clock, system_clock
from diet_chat.client.api import FetchPage
from diet_chat.client.merge import apply_read_update, mark_locally_read, merge_messages
from diet_chat.client.read_receipts import ReadReceiptBatcher
from diet_chat.client.realtime import RealtimeTransport
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)

POLLING_NOTICE = "Live updates are unavailable, new messages are checked every few seconds."


class MessagesApi(Protocol):
    @property
    def key(self) -> ConversationKey: ...

    async def fetch(self, after_id: int | None = None) -> FetchPage: ...

    async def fetch_one(self, message_id: int) -> Message | None: ...

    async def send(
        self,
        content: str,
        meal_tag_id: int | None = None,
        photos: list[str] | None = None,
    ) -> Message: ...

    async def mark_read(self, message_ids: list[int]) -> int: ...

    async def heartbeat(self, is_active: bool, source: str | None = None) -> None: ...


class SyncState(StrEnum):
    IDLE = "idle"
    HYDRATING = "hydrating"
    LIVE = "live"
    POLLING = "polling"
    CLOSED = "closed"


@dataclass(slots=True)
class SyncConfig:
    poll_interval: float = 15.0
    # Keep below the server presence TTL (30s by default)
    heartbeat_interval: float = 20.0
    read_dwell: float = 1.5
    heartbeat_source: str | None = "web"
    final_heartbeat_timeout: float = 2.0


ChangeListener = Callable[[Sequence[Message]], None]


class ConversationSync:
    def __init__(
        self,
        api: MessagesApi,
        realtime: RealtimeTransport,
        viewer_id: int,
        config: SyncConfig | None = None,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self._api = api
        self._realtime = realtime
        self._viewer_id = viewer_id
        self._config = config or SyncConfig()
        self._clock = clock

        self._state = SyncState.IDLE
        self._messages: tuple[Message, ...] = ()
        self._cursor: int | None = None
        self._unread_count: int | None = None
        self._notice: str | None = None
        self._visible = True
        self._listeners: list[ChangeListener] = []

        self._poll_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._receipts = ReadReceiptBatcher(
            viewer_id,
            api.mark_read,
            dwell=self._config.read_dwell,
            on_marked=self._on_marked_read,
        )

    @property
    def key(self) -> ConversationKey:
        return self._api.key

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    @property
    def cursor(self) -> int | None:
        return self._cursor

    @property
    def unread_count(self) -> int | None:
        return self._unread_count

    @property
    def notice(self) -> str | None:
        return self._notice

    @property
    def receipts(self) -> ReadReceiptBatcher:
        return self._receipts

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener for list changes. Returns an unregister callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dismiss_notice(self) -> None:
        self._notice = None

    async def open(self) -> None:
        """Bulk load, start presence heartbeats, then go live or fall back to polling."""
        if self._state is not SyncState.IDLE:
            raise RuntimeError(f"Cannot open a sync in state {self._state}")
        self._state = SyncState.HYDRATING

        try:
            page = await self._api.fetch(None)
        except Exception:
            self._state = SyncState.IDLE
            raise
        self._unread_count = page.unread_count
        self._merge(page.messages)

        await self._beat()
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(), name=f"presence-{self.key}",
        )

        try:
            await self._realtime.subscribe(self._on_insert, self._on_update, self._on_transport_lost)
        except TransportError as exc:
            logger.warning("Realtime unavailable for %s: %s", self.key, exc.detail)
            self._enter_polling()
            return
        except Exception:
            logger.warning("Realtime subscribe for %s failed", self.key, exc_info=True)
            self._enter_polling()
            return
        if self._state is SyncState.HYDRATING:
            self._state = SyncState.LIVE
            logger.info("Conversation %s is live", self.key)

    async def send(
        self,
        content: str,
        meal_tag_id: int | None = None,
        photos: list[str] | None = None,
    ) -> Message:
        message = await self._api.send(content, meal_tag_id, photos)
        self._merge([message])
        return message

    async def poll_once(self) -> None:
        page = await self._api.fetch(self._cursor)
        self._merge(page.messages)

    async def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        if self._state is SyncState.CLOSED:
            return
        if visible:
            self._receipts.offer(self._messages)
        else:
            self._receipts.discard()
        await self._beat()

    async def close(self) -> None:
        if self._state is SyncState.CLOSED:
            return
        self._state = SyncState.CLOSED
        for task in (self._poll_task, self._heartbeat_task):
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._poll_task = self._heartbeat_task = None
        await self._receipts.close()
        await self._realtime.close()
        try:
            await asyncio.wait_for(
                self._api.heartbeat(False, self._config.heartbeat_source),
                self._config.final_heartbeat_timeout,
            )
        except asyncio.TimeoutError:
            logger.debug("Final presence heartbeat for %s timed out", self.key)
        logger.info("Conversation %s closed", self.key)

    def _merge(self, incoming: Sequence[Message]) -> None:
        own = [m for m in incoming if m.key == self.key]
        result = merge_messages(self._messages, own, self._cursor)
        self._cursor = result.cursor
        if not result.added:
            return
        self._messages = result.messages
        if self._visible:
            self._receipts.offer(result.added)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._messages)
            except Exception:
                logger.exception("Change listener failed for %s", self.key)

    def _on_marked_read(self, message_ids: list[int]) -> None:
        self._messages = mark_locally_read(self._messages, message_ids, self._clock.now())
        self._notify()

    async def _on_insert(self, message_id: int) -> None:
        if any(m.id == message_id for m in self._messages):
            return
        try:
            message = await self._api.fetch_one(message_id)
        except Exception:
            logger.warning("Fetching message %d for %s failed", message_id, self.key, exc_info=True)
            return
        if message is not None:
            self._merge([message])

    async def _on_update(self, message_id: int, is_read: bool, read_at: datetime | None) -> None:
        patched = apply_read_update(self._messages, message_id, is_read, read_at)
        if patched != self._messages:
            self._messages = patched
            self._notify()

    async def _on_transport_lost(self) -> None:
        if self._state is SyncState.LIVE:
            self._enter_polling()

    def _enter_polling(self) -> None:
        if self._state in (SyncState.POLLING, SyncState.CLOSED):
            return
        self._state = SyncState.POLLING
        self._notice = POLLING_NOTICE
        self._poll_task = asyncio.create_task(self._poll_loop(), name=f"poll-{self.key}")
        logger.info("Conversation %s switched to polling every %.0fs", self.key, self._config.poll_interval)

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.warning("Poll for %s failed", self.key, exc_info=True)
            await asyncio.sleep(self._config.poll_interval)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.heartbeat_interval)
            await self._beat()

    async def _beat(self) -> None:
        await self._api.heartbeat(self._visible, self._config.heartbeat_source)
