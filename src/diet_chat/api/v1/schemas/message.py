from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, computed_field

from diet_chat.api.v1.schemas.common import CamelModel, SuccessResponse
from diet_chat.domain.entities.message import Message


class PhotoIn(CamelModel):
    image_data: str = Field(min_length=1)


class SendMessageRequest(CamelModel):
    content: str | None = None
    meal_tag_id: int | None = None
    photos: list[PhotoIn] | None = None


class MarkReadRequest(CamelModel):
    # validated by the service so a missing or empty list yields 400 with a readable message
    message_ids: Any = None


class PhotoOut(CamelModel):
    id: int
    image_data: str
    uploaded_at: datetime
    expires_at: datetime


class SenderOut(CamelModel):
    id: int
    role: str


class MessageOut(CamelModel):
    id: int
    client_id: int
    diet_id: int
    sender_id: int
    sender_role: str
    content: str
    meal_tag_id: int | None
    created_at: datetime
    is_read: bool
    read_at: datetime | None
    photos: list[PhotoOut] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def sender(self) -> SenderOut:
        return SenderOut(id=self.sender_id, role=self.sender_role)

    @classmethod
    def from_entity(cls, message: Message) -> MessageOut:
        return cls(
            id=message.id,
            client_id=message.client_id,
            diet_id=message.diet_id,
            sender_id=message.sender_id,
            sender_role=message.sender_role,
            content=message.content,
            meal_tag_id=message.meal_tag_id,
            created_at=message.created_at,
            is_read=message.is_read,
            read_at=message.read_at,
            photos=[
                PhotoOut(
                    id=p.id,
                    image_data=p.image_data,
                    uploaded_at=p.uploaded_at,
                    expires_at=p.expires_at,
                )
                for p in message.photos
            ],
        )


class MessageListResponse(SuccessResponse):
    messages: list[MessageOut]


class FullMessageListResponse(MessageListResponse):
    unread_count: int


class MessageResponse(SuccessResponse):
    message: MessageOut


class MarkReadResponse(SuccessResponse):
    marked_count: int


class UnreadSummaryResponse(SuccessResponse):
    total_unread: int
    unread_by_diet: dict[int, int]
