from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from diet_chat.domain.entities.push_subscription import DeviceToken, WebPushSubscription
from diet_chat.infrastructure.db.mappers import push_subscription as mapper
from diet_chat.infrastructure.db.models.push_subscription import (
    DeviceTokenModel,
    PushSubscriptionModel,
)


class PushSubscriptionReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_web_for_user(self, user_id: int) -> list[WebPushSubscription]:
        stmt = (
            select(PushSubscriptionModel)
            .where(PushSubscriptionModel.user_id == user_id)
            .order_by(PushSubscriptionModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get_device_token(self, user_id: int) -> DeviceToken | None:
        model = await self._session.get(DeviceTokenModel, user_id)
        return mapper.device_token_to_entity(model) if model else None


class PushSubscriptionWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert_web(
        self,
        user_id: int,
        endpoint: str,
        p256dh: str,
        auth: str,
    ) -> WebPushSubscription:
        stmt = (
            pg_insert(PushSubscriptionModel)
            .values(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
            .on_conflict_do_update(
                index_elements=[PushSubscriptionModel.endpoint],
                set_={"user_id": user_id, "p256dh": p256dh, "auth": auth},
            )
            .returning(PushSubscriptionModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())

    async def delete_web_by_endpoint(self, endpoint: str, *, user_id: int | None = None) -> int:
        stmt = delete(PushSubscriptionModel).where(PushSubscriptionModel.endpoint == endpoint)
        if user_id is not None:
            stmt = stmt.where(PushSubscriptionModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def set_device_token(self, user_id: int, token: str | None) -> None:
        if token is None:
            await self._session.execute(
                delete(DeviceTokenModel).where(DeviceTokenModel.user_id == user_id)
            )
            return
        stmt = (
            pg_insert(DeviceTokenModel)
            .values(user_id=user_id, token=token)
            .on_conflict_do_update(
                index_elements=[DeviceTokenModel.user_id],
                set_={"token": token},
            )
        )
        await self._session.execute(stmt)
