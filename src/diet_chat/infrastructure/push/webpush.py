"""Web push (VAPID) through pywebpush."""
from __future__ import annotations

import asyncio
import json
from typing import Any

from pywebpush import WebPushException, webpush

from diet_chat.application.exceptions import NotificationDeliveryError
from diet_chat.domain.entities.push_subscription import WebPushSubscription


class VapidWebPushSender:
    """Implements application.ports.push.WebPushSender.

    pywebpush is blocking, so each send runs in a worker thread.
    """

    def __init__(
        self,
        private_key: str,
        subject: str,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._private_key = private_key
        self._subject = subject
        self._timeout = timeout

    async def send(
        self,
        subscription: WebPushSubscription,
        payload: dict[str, Any],
    ) -> None:
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription.as_subscription_info(),
                data=json.dumps(payload),
                vapid_private_key=self._private_key,
                vapid_claims={"sub": self._subject},
                timeout=self._timeout,
            )
        except WebPushException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise NotificationDeliveryError(str(exc), status_code=status_code) from exc
