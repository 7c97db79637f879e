from __future__ import annotations

from pydantic import Field

from diet_chat.api.v1.schemas.common import CamelModel, SuccessResponse


class SubscriptionKeys(CamelModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class WebSubscriptionIn(CamelModel):
    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys


class SubscribeRequest(CamelModel):
    subscription: WebSubscriptionIn


class UnsubscribeRequest(CamelModel):
    endpoint: str = Field(min_length=1)


class SubscribeResponse(SuccessResponse):
    subscription_id: int


class DeviceTokenRequest(CamelModel):
    push_token: str = Field(min_length=1)
