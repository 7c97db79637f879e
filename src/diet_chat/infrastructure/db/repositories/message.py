from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from diet_chat.application.dto.message import NewPhoto
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.message import Message
from diet_chat.infrastructure.db.mappers import message as mapper
from diet_chat.infrastructure.db.models.message import MessageModel
from diet_chat.infrastructure.db.models.photo import MealPhotoModel


def _in_conversation(key: ConversationKey):
    return (
        MessageModel.client_id == key.client_id,
        MessageModel.diet_id == key.diet_id,
    )


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_since(
        self,
        key: ConversationKey,
        after_id: int | None,
        *,
        now: datetime,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(*_in_conversation(key))
            .order_by(MessageModel.id.asc())
        )
        if after_id is not None:
            stmt = stmt.where(MessageModel.id > after_id)
        result = await self._session.execute(stmt)
        rows = result.scalars().all()
        photos = await self._live_photos([r.id for r in rows], now)
        return [mapper.model_to_entity(r, photos.get(r.id, ())) for r in rows]

    async def get(self, key: ConversationKey, message_id: int, *, now: datetime) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.id == message_id,
            *_in_conversation(key),
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        photos = await self._live_photos([row.id], now)
        return mapper.model_to_entity(row, photos.get(row.id, ()))

    async def unread_by_diet(self, client_id: int, reader_id: int) -> dict[int, int]:
        stmt = (
            select(MessageModel.diet_id, func.count(MessageModel.id))
            .where(
                MessageModel.client_id == client_id,
                MessageModel.is_read.is_(False),
                MessageModel.sender_id != reader_id,
            )
            .group_by(MessageModel.diet_id)
        )
        result = await self._session.execute(stmt)
        return {diet_id: int(count) for diet_id, count in result.all()}

    async def _live_photos(
        self,
        message_ids: list[int],
        now: datetime,
    ) -> dict[int, list[MealPhotoModel]]:
        if not message_ids:
            return {}
        stmt = (
            select(MealPhotoModel)
            .where(
                MealPhotoModel.message_id.in_(message_ids),
                MealPhotoModel.expires_at >= now,
            )
            .order_by(MealPhotoModel.id.asc())
        )
        result = await self._session.execute(stmt)
        grouped: dict[int, list[MealPhotoModel]] = defaultdict(list)
        for photo in result.scalars().all():
            grouped[photo.message_id].append(photo)
        return grouped


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        key: ConversationKey,
        sender_id: int,
        sender_role: str,
        content: str,
        meal_tag_id: int | None,
        photos: list[NewPhoto],
        *,
        now: datetime,
        photo_expires_at: datetime,
    ) -> Message:
        model = MessageModel(
            client_id=key.client_id,
            diet_id=key.diet_id,
            sender_id=sender_id,
            sender_role=sender_role,
            content=content,
            meal_tag_id=meal_tag_id,
            is_read=False,
            created_at=now,
        )
        self._session.add(model)
        await self._session.flush()

        photo_models = [
            MealPhotoModel(
                message_id=model.id,
                client_id=key.client_id,
                diet_id=key.diet_id,
                meal_tag_id=meal_tag_id,
                image_data=photo.image_data,
                uploaded_at=now,
                expires_at=photo_expires_at,
            )
            for photo in photos
        ]
        if photo_models:
            self._session.add_all(photo_models)
            await self._session.flush()

        return mapper.model_to_entity(model, photo_models)

    async def mark_read(
        self,
        key: ConversationKey,
        reader_id: int,
        message_ids: list[int],
        *,
        now: datetime,
    ) -> list[int]:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id.in_(message_ids),
                *_in_conversation(key),
                MessageModel.sender_id != reader_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=now)
            .returning(MessageModel.id)
        )
        result = await self._session.execute(stmt)
        return sorted(result.scalars().all())

    async def purge_expired_photos(self, now: datetime) -> int:
        stmt = delete(MealPhotoModel).where(MealPhotoModel.expires_at < now)
        result = await self._session.execute(stmt)
        return result.rowcount or 0
