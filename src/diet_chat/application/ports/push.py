from __future__ import annotations

from typing import Any, Protocol

from diet_chat.domain.entities.push_subscription import WebPushSubscription


class NativePushSender(Protocol):
    async def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> None:
        """Raise NotificationDeliveryError when the push service rejects the message."""
        ...


class WebPushSender(Protocol):
    async def send(
        self,
        subscription: WebPushSubscription,
        payload: dict[str, Any],
    ) -> None:
        """Raise NotificationDeliveryError carrying the HTTP status when known."""
        ...
