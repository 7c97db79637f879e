from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Query

from diet_chat.api.deps import CurrentPrincipal, DispatcherDep, UoWDep
from diet_chat.api.v1.schemas.message import (
    FullMessageListResponse,
    MarkReadRequest,
    MarkReadResponse,
    MessageListResponse,
    MessageOut,
    MessageResponse,
    SendMessageRequest,
)
from diet_chat.application.dto.message import NewPhoto
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.services import message_service, read_state_service

router = APIRouter(prefix="/api/v1/conversations/{client_id}/{diet_id}", tags=["messages"])


@router.get("/messages", response_model=None)
async def fetch_messages(
    client_id: int,
    diet_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
    after_id: int | None = Query(None, alias="afterId"),
    message_id: int | None = Query(None, alias="messageId"),
) -> MessageListResponse | MessageResponse:
    key = ConversationKey(client_id, diet_id)
    if message_id is not None:
        message = await message_service.fetch_one(key, principal, message_id, uow)
        return MessageResponse(message=MessageOut.from_entity(message))

    result = await message_service.fetch_since(key, principal, after_id, uow)
    messages = [MessageOut.from_entity(m) for m in result.messages]
    if result.unread_count is None:
        return MessageListResponse(messages=messages)
    return FullMessageListResponse(messages=messages, unread_count=result.unread_count)


@router.post("/messages", response_model=MessageResponse)
async def send_message(
    client_id: int,
    diet_id: int,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    dispatcher: DispatcherDep,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    photos = [NewPhoto(image_data=p.image_data) for p in body.photos or []]
    message, link = await message_service.append_message(
        ConversationKey(client_id, diet_id),
        principal,
        body.content,
        body.meal_tag_id,
        photos,
        uow,
    )
    # Runs after the response is sent; the dispatcher never raises
    background_tasks.add_task(dispatcher.dispatch, message, link)
    return MessageResponse(message=MessageOut.from_entity(message))


@router.patch("/messages", response_model=MarkReadResponse)
async def mark_messages_read(
    client_id: int,
    diet_id: int,
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    marked = await read_state_service.mark_read(
        ConversationKey(client_id, diet_id),
        principal,
        body.message_ids,
        uow,
    )
    return MarkReadResponse(marked_count=marked)
