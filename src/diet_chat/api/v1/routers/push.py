from __future__ import annotations

from fastapi import APIRouter

from diet_chat.api.deps import CurrentPrincipal, UoWDep
from diet_chat.api.v1.schemas.common import SuccessResponse
from diet_chat.api.v1.schemas.push import (
    DeviceTokenRequest,
    SubscribeRequest,
    SubscribeResponse,
    UnsubscribeRequest,
)
from diet_chat.services import push_subscription_service

router = APIRouter(prefix="/api/v1/push", tags=["push"])


@router.post("/subscriptions", response_model=SubscribeResponse)
async def subscribe(
    body: SubscribeRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> SubscribeResponse:
    sub = body.subscription
    subscription = await push_subscription_service.register_web_subscription(
        principal, sub.endpoint, sub.keys.p256dh, sub.keys.auth, uow,
    )
    return SubscribeResponse(subscription_id=subscription.id)


@router.delete("/subscriptions", response_model=SuccessResponse)
async def unsubscribe(
    body: UnsubscribeRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> SuccessResponse:
    await push_subscription_service.remove_web_subscription(principal, body.endpoint, uow)
    return SuccessResponse()


@router.post("/token", response_model=SuccessResponse)
async def save_token(
    body: DeviceTokenRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> SuccessResponse:
    await push_subscription_service.save_device_token(principal, body.push_token, uow)
    return SuccessResponse()


@router.delete("/token", response_model=SuccessResponse)
async def remove_token(principal: CurrentPrincipal, uow: UoWDep) -> SuccessResponse:
    await push_subscription_service.clear_device_token(principal, uow)
    return SuccessResponse()
