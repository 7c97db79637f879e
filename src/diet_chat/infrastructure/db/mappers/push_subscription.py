from __future__ import annotations

from diet_chat.domain.entities.push_subscription import DeviceToken, WebPushSubscription
from diet_chat.infrastructure.db.models.push_subscription import (
    DeviceTokenModel,
    PushSubscriptionModel,
)


def model_to_entity(model: PushSubscriptionModel) -> WebPushSubscription:
    return WebPushSubscription(
        id=model.id,
        user_id=model.user_id,
        endpoint=model.endpoint,
        p256dh=model.p256dh,
        auth=model.auth,
        created_at=model.created_at,
    )


def device_token_to_entity(model: DeviceTokenModel) -> DeviceToken:
    return DeviceToken(user_id=model.user_id, token=model.token)
