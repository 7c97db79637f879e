from __future__ import annotations

from collections.abc import Iterable

from diet_chat.domain.entities.message import MealPhoto, Message
from diet_chat.infrastructure.db.models.message import MessageModel
from diet_chat.infrastructure.db.models.photo import MealPhotoModel


def photo_to_entity(model: MealPhotoModel) -> MealPhoto:
    return MealPhoto(
        id=model.id,
        image_data=model.image_data,
        uploaded_at=model.uploaded_at,
        expires_at=model.expires_at,
    )


def model_to_entity(
    model: MessageModel,
    photos: Iterable[MealPhotoModel] = (),
) -> Message:
    return Message(
        id=model.id,
        client_id=model.client_id,
        diet_id=model.diet_id,
        sender_id=model.sender_id,
        sender_role=model.sender_role,
        content=model.content,
        meal_tag_id=model.meal_tag_id,
        created_at=model.created_at,
        is_read=model.is_read,
        read_at=model.read_at,
        photos=tuple(photo_to_entity(p) for p in photos),
    )
