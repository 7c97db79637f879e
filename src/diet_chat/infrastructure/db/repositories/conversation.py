from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from diet_chat.domain.entities.conversation import ConversationKey, ConversationLink
from diet_chat.infrastructure.db.models.client import ClientModel, DietModel


class ConversationLinkReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_link(self, key: ConversationKey) -> ConversationLink | None:
        stmt = (
            select(ClientModel)
            .join(DietModel, DietModel.client_id == ClientModel.id)
            .where(
                ClientModel.id == key.client_id,
                DietModel.id == key.diet_id,
            )
        )
        result = await self._session.execute(stmt)
        client = result.scalar_one_or_none()
        if client is None:
            return None
        return ConversationLink(
            key=key,
            client_user_id=client.user_id,
            dietitian_user_id=client.dietitian_id,
            client_name=f"{client.name} {client.surname}".strip(),
        )

    async def get_client_users(self, client_id: int) -> tuple[int | None, int | None] | None:
        stmt = select(ClientModel.user_id, ClientModel.dietitian_id).where(
            ClientModel.id == client_id
        )
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row.user_id, row.dietitian_id
