"""Native push through the Expo push service."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from diet_chat.application.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)

EXPO_TOKEN_PREFIX = "ExponentPushToken["


class ExpoPushSender:
    """Implements application.ports.push.NativePushSender."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> None:
        if not token.startswith(EXPO_TOKEN_PREFIX):
            raise NotificationDeliveryError(f"Invalid Expo push token: {token[:20]}...")

        message = {
            "to": token,
            "title": title,
            "body": body,
            "data": data,
            "sound": "default",
            "priority": "high",
        }
        try:
            response = await self._client.post(
                self._url,
                json=message,
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as exc:
            raise NotificationDeliveryError(f"Expo push request failed: {exc}") from exc

        if response.status_code >= 400:
            raise NotificationDeliveryError(
                f"Expo push rejected with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        tickets = response.json().get("data")
        if isinstance(tickets, list):
            ticket = tickets[0] if tickets else {}
        else:
            ticket = tickets or {}
        if ticket.get("status") != "ok":
            error = (ticket.get("details") or {}).get("error") or ticket.get("message")
            if error == "DeviceNotRegistered":
                logger.warning("Expo reports device not registered: %s...", token[:20])
            raise NotificationDeliveryError(f"Expo push ticket error: {error}")
