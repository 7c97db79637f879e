from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class WebPushSubscription:
    id: int
    user_id: int
    endpoint: str
    p256dh: str
    auth: str
    created_at: datetime | None = None

    def as_subscription_info(self) -> dict[str, object]:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }


@dataclass(frozen=True, slots=True)
class DeviceToken:
    user_id: int
    token: str
