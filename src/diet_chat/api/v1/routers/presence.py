from __future__ import annotations

import logging

from fastapi import APIRouter, Query, Request
from pydantic import ValidationError as PydanticValidationError

from diet_chat.api.deps import BeaconPrincipal, CurrentPrincipal, PresenceDep
from diet_chat.api.v1.schemas.common import SuccessResponse
from diet_chat.api.v1.schemas.presence import PresenceOut, PresenceRequest, PresenceStatusResponse
from diet_chat.application.exceptions import ValidationError
from diet_chat.domain.entities.conversation import ConversationKey

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/conversations/presence", tags=["presence"])


@router.post("", response_model=SuccessResponse)
async def heartbeat(
    request: Request,
    principal: BeaconPrincipal,
    presence: PresenceDep,
) -> SuccessResponse:
    # Beacons arrive as text/plain, so the body is parsed whatever its content type
    raw = await request.body()
    try:
        body = PresenceRequest.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ValidationError("conversationKey and isActive are required") from exc

    key = ConversationKey(body.conversation_key.client_id, body.conversation_key.diet_id)
    await presence.heartbeat(principal, key, body.is_active, body.source)
    return SuccessResponse()


@router.get("", response_model=PresenceStatusResponse)
async def get_presence(
    principal: CurrentPrincipal,
    presence: PresenceDep,
    client_id: int = Query(alias="clientId"),
    diet_id: int = Query(alias="dietId"),
) -> PresenceStatusResponse:
    key = ConversationKey(client_id, diet_id)
    record = await presence.get(principal.user_id, key)
    is_active = await presence.is_active(principal.user_id, key)
    if record is None:
        return PresenceStatusResponse(is_active=False)
    return PresenceStatusResponse(
        is_active=is_active,
        record=PresenceOut(
            user_id=record.user_id,
            client_id=record.key.client_id,
            diet_id=record.key.diet_id,
            is_active=record.is_active,
            source=record.source,
            last_active_at=record.last_active_at,
        ),
    )
