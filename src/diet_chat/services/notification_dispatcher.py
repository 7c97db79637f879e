"""Post-commit push fan-out for new messages.

Dispatch runs after the sender's response has been produced. Every failure
is logged and swallowed here; nothing propagates back to the send path.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from diet_chat.application.exceptions import NotificationDeliveryError
from diet_chat.application.ports.push import NativePushSender, WebPushSender
from diet_chat.application.uow import UnitOfWorkFactory
from diet_chat.domain.entities.conversation import ConversationLink
from diet_chat.domain.entities.message import Message
from diet_chat.domain.entities.push_subscription import WebPushSubscription
from diet_chat.domain.value_objects.enums import SenderRole
from diet_chat.services.presence_service import PresenceTracker

logger = logging.getLogger(__name__)

# Push services answer 404/410 for endpoints that will never accept deliveries again
DEAD_ENDPOINT_STATUSES = frozenset({404, 410})

DIETITIAN_TITLE_PREFIX = "Yeni Mesaj"
CLIENT_TITLE = "Diyetisyeninizden Yeni Mesaj"


@dataclass(slots=True)
class DispatchReport:
    message_id: int
    recipient_id: int | None = None
    suppressed: bool = False
    native_sent: bool = False
    web_sent: int = 0
    web_failed: int = 0
    pruned_endpoints: list[str] = field(default_factory=list)


class NotificationDispatcher:
    def __init__(
        self,
        presence: PresenceTracker,
        native: NativePushSender,
        web: WebPushSender | None,
        uow_factory: UnitOfWorkFactory,
        *,
        native_body_limit: int = 100,
        web_body_limit: int = 120,
    ) -> None:
        self._presence = presence
        self._native = native
        self._web = web
        self._uow_factory = uow_factory
        self._native_body_limit = native_body_limit
        self._web_body_limit = web_body_limit

    async def dispatch(self, message: Message, link: ConversationLink) -> DispatchReport:
        """Notify the other party of `message` unless they are viewing the thread."""
        report = DispatchReport(message_id=message.id)
        try:
            await self._dispatch(message, link, report)
        except Exception:
            logger.exception("Notification dispatch failed for message %d", message.id)
        return report

    async def _dispatch(
        self,
        message: Message,
        link: ConversationLink,
        report: DispatchReport,
    ) -> None:
        recipient_id = link.counterpart_of(message.sender_id)
        if recipient_id is None:
            logger.info("No linked recipient for message %d in %s", message.id, link.key)
            return
        report.recipient_id = recipient_id

        if await self._presence.is_active(recipient_id, link.key):
            report.suppressed = True
            logger.info(
                "Recipient %d is viewing %s, skipping push for message %d",
                recipient_id, link.key, message.id,
            )
            return

        async with self._uow_factory() as uow:
            device = await uow.push.get_device_token(recipient_id)
            subscriptions = await uow.push.list_web_for_user(recipient_id)

        title = self._title(message, link)
        sends: list[Any] = []
        if device is not None:
            sends.append(self._send_native(device.token, title, message, link, report))
        if subscriptions:
            if self._web is None:
                logger.warning(
                    "Web push is not configured, skipping %d subscription(s) of user %d",
                    len(subscriptions), recipient_id,
                )
            else:
                payload = self._web_payload(title, message, link, recipient_id)
                sends.extend(self._send_web(sub, payload, report) for sub in subscriptions)

        # each send guards itself, one failure never cancels its siblings
        await asyncio.gather(*sends)

    async def _send_native(
        self,
        token: str,
        title: str,
        message: Message,
        link: ConversationLink,
        report: DispatchReport,
    ) -> None:
        data = {
            "type": "new_message",
            "messageId": message.id,
            "conversationKey": str(link.key),
            "clientId": link.key.client_id,
            "dietId": link.key.diet_id,
        }
        if message.sender_role == SenderRole.CLIENT:
            data["clientName"] = link.client_name
        try:
            await self._native.send(
                token,
                title,
                message.content[: self._native_body_limit],
                data,
            )
        except NotificationDeliveryError as exc:
            logger.warning("Native push failed for message %d: %s", message.id, exc.detail)
            return
        except Exception:
            logger.exception("Native push crashed for message %d", message.id)
            return
        report.native_sent = True
        logger.info("Native push sent for message %d (%s...)", message.id, token[:20])

    async def _send_web(
        self,
        subscription: WebPushSubscription,
        payload: dict[str, Any],
        report: DispatchReport,
    ) -> None:
        assert self._web is not None
        try:
            await self._web.send(subscription, payload)
        except NotificationDeliveryError as exc:
            report.web_failed += 1
            logger.warning(
                "Web push to subscription %d failed (status=%s): %s",
                subscription.id, exc.status_code, exc.detail,
            )
            if await self.prune_dead_subscription(subscription, exc.status_code):
                report.pruned_endpoints.append(subscription.endpoint)
            return
        except Exception:
            report.web_failed += 1
            logger.exception("Web push to subscription %d crashed", subscription.id)
            return
        report.web_sent += 1

    async def prune_dead_subscription(
        self,
        subscription: WebPushSubscription,
        status_code: int | None,
    ) -> bool:
        """Delete the subscription iff the push service confirmed the endpoint is gone."""
        if status_code not in DEAD_ENDPOINT_STATUSES:
            return False
        try:
            async with self._uow_factory() as uow:
                await uow.push_w.delete_web_by_endpoint(subscription.endpoint)
                await uow.commit()
        except Exception:
            logger.exception("Failed to delete dead push subscription %d", subscription.id)
            return False
        logger.info("Deleted dead push subscription %d (status=%s)", subscription.id, status_code)
        return True

    def _title(self, message: Message, link: ConversationLink) -> str:
        if message.sender_role == SenderRole.CLIENT:
            return f"{DIETITIAN_TITLE_PREFIX}: {link.client_name}" if link.client_name else DIETITIAN_TITLE_PREFIX
        return CLIENT_TITLE

    def _web_payload(
        self,
        title: str,
        message: Message,
        link: ConversationLink,
        recipient_id: int,
    ) -> dict[str, Any]:
        if recipient_id == link.dietitian_user_id:
            url = f"/clients/{link.key.client_id}/messages?dietId={link.key.diet_id}"
        else:
            url = f"/client/diets/{link.key.diet_id}/messages"
        return {
            "title": title,
            "body": message.content[: self._web_body_limit],
            "url": url,
            "tag": f"message-{message.id}",
            "data": {
                "type": "new_message",
                "messageId": message.id,
                "clientId": link.key.client_id,
                "dietId": link.key.diet_id,
            },
        }
