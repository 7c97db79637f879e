from __future__ import annotations

from typing import Protocol

from diet_chat.domain.entities.push_subscription import DeviceToken, WebPushSubscription


class PushSubscriptionReader(Protocol):
    async def list_web_for_user(self, user_id: int) -> list[WebPushSubscription]: ...

    async def get_device_token(self, user_id: int) -> DeviceToken | None: ...


class PushSubscriptionWriter(Protocol):
    async def upsert_web(
        self,
        user_id: int,
        endpoint: str,
        p256dh: str,
        auth: str,
    ) -> WebPushSubscription: ...

    async def delete_web_by_endpoint(self, endpoint: str, *, user_id: int | None = None) -> int: ...

    async def set_device_token(self, user_id: int, token: str | None) -> None: ...
