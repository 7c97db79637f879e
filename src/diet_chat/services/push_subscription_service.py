from __future__ import annotations

import logging

from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import ValidationError
from diet_chat.application.uow import UnitOfWork
from diet_chat.domain.entities.push_subscription import WebPushSubscription

logger = logging.getLogger(__name__)


async def register_web_subscription(
    principal: Principal,
    endpoint: str,
    p256dh: str,
    auth: str,
    uow: UnitOfWork,
) -> WebPushSubscription:
    """Opt a browser in. Re-registering an endpoint moves it to the caller."""
    if not endpoint or not p256dh or not auth:
        raise ValidationError("Invalid payload")
    subscription = await uow.push_w.upsert_web(principal.user_id, endpoint, p256dh, auth)
    await uow.commit()
    return subscription


async def remove_web_subscription(
    principal: Principal,
    endpoint: str,
    uow: UnitOfWork,
) -> int:
    if not endpoint:
        raise ValidationError("Endpoint required")
    deleted = await uow.push_w.delete_web_by_endpoint(endpoint, user_id=principal.user_id)
    await uow.commit()
    return deleted


async def save_device_token(principal: Principal, token: str, uow: UnitOfWork) -> None:
    if not token:
        raise ValidationError("Push token is required")
    await uow.push_w.set_device_token(principal.user_id, token)
    await uow.commit()
    logger.info("Push token saved for user %d: %s...", principal.user_id, token[:20])


async def clear_device_token(principal: Principal, uow: UnitOfWork) -> None:
    await uow.push_w.set_device_token(principal.user_id, None)
    await uow.commit()
    logger.info("Push token removed for user %d", principal.user_id)
