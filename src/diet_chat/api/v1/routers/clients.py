from __future__ import annotations

from fastapi import APIRouter

from diet_chat.api.deps import CurrentPrincipal, UoWDep
from diet_chat.api.v1.schemas.message import UnreadSummaryResponse
from diet_chat.services import message_service

router = APIRouter(prefix="/api/v1/clients", tags=["clients"])


@router.get("/{client_id}/unread-messages", response_model=UnreadSummaryResponse)
async def unread_messages(
    client_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> UnreadSummaryResponse:
    summary = await message_service.unread_summary(client_id, principal, uow)
    return UnreadSummaryResponse(
        total_unread=summary.total_unread,
        unread_by_diet=summary.unread_by_diet,
    )
