"""Decode server JSON into domain entities on the client side."""
from __future__ import annotations

from typing import Any

from diet_chat.api.v1.schemas.message import MessageOut
from diet_chat.domain.entities.message import MealPhoto, Message


def message_from_wire(data: dict[str, Any]) -> Message:
    out = MessageOut.model_validate(data)
    return Message(
        id=out.id,
        client_id=out.client_id,
        diet_id=out.diet_id,
        sender_id=out.sender_id,
        sender_role=out.sender_role,
        content=out.content,
        meal_tag_id=out.meal_tag_id,
        created_at=out.created_at,
        is_read=out.is_read,
        read_at=out.read_at,
        photos=tuple(
            MealPhoto(
                id=p.id,
                image_data=p.image_data,
                uploaded_at=p.uploaded_at,
                expires_at=p.expires_at,
            )
            for p in out.photos
        ),
    )
