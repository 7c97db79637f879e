"""HTTP client for one conversation's message endpoints."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from diet_chat.application.exceptions import (
    AppError,
    AuthError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from diet_chat.client.wire import message_from_wire
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)

_ERROR_BY_STATUS: dict[int, type[AppError]] = {
    400: ValidationError,
    401: AuthError,
    403: ForbiddenError,
    404: NotFoundError,
}


@dataclass(frozen=True, slots=True)
class FetchPage:
    messages: list[Message]
    unread_count: int | None = None


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        detail = str(response.json().get("error", ""))
    except ValueError:
        detail = response.text
    error_cls = _ERROR_BY_STATUS.get(response.status_code)
    if error_cls is not None:
        raise error_cls(detail)
    response.raise_for_status()


class ConversationApi:
    def __init__(self, client: httpx.AsyncClient, key: ConversationKey, token: str) -> None:
        self._client = client
        self._key = key
        self._headers = {"Authorization": f"Bearer {token}"}
        self._token = token

    @property
    def key(self) -> ConversationKey:
        return self._key

    @property
    def _messages_path(self) -> str:
        return f"/api/v1/conversations/{self._key.client_id}/{self._key.diet_id}/messages"

    async def fetch(self, after_id: int | None = None) -> FetchPage:
        """Full list when `after_id` is None, otherwise only newer messages."""
        params = {"afterId": after_id} if after_id is not None else None
        response = await self._client.get(self._messages_path, params=params, headers=self._headers)
        _raise_for_error(response)
        body = response.json()
        return FetchPage(
            messages=[message_from_wire(m) for m in body.get("messages", [])],
            unread_count=body.get("unreadCount"),
        )

    async def fetch_one(self, message_id: int) -> Message | None:
        response = await self._client.get(
            self._messages_path,
            params={"messageId": message_id},
            headers=self._headers,
        )
        if response.status_code == 404:
            return None
        _raise_for_error(response)
        return message_from_wire(response.json()["message"])

    async def send(
        self,
        content: str,
        meal_tag_id: int | None = None,
        photos: list[str] | None = None,
    ) -> Message:
        payload: dict[str, Any] = {"content": content}
        if meal_tag_id is not None:
            payload["mealTagId"] = meal_tag_id
        if photos:
            payload["photos"] = [{"imageData": p} for p in photos]
        response = await self._client.post(self._messages_path, json=payload, headers=self._headers)
        _raise_for_error(response)
        return message_from_wire(response.json()["message"])

    async def mark_read(self, message_ids: list[int]) -> int:
        response = await self._client.patch(
            self._messages_path,
            json={"messageIds": message_ids},
            headers=self._headers,
        )
        _raise_for_error(response)
        return int(response.json().get("markedCount", 0))

    async def heartbeat(self, is_active: bool, source: str | None = None) -> None:
        """Best-effort presence report. Failures are logged, never raised.

        The body goes out as text/plain with the token in the query string,
        the same shape a page-teardown beacon uses.
        """
        body = {
            "conversationKey": {"clientId": self._key.client_id, "dietId": self._key.diet_id},
            "isActive": is_active,
            "source": source,
        }
        try:
            response = await self._client.post(
                "/api/v1/conversations/presence",
                params={"access_token": self._token},
                content=json.dumps(body),
                headers={"Content-Type": "text/plain"},
            )
            if not response.is_success:
                logger.debug("Presence heartbeat rejected with %d", response.status_code)
        except httpx.HTTPError as exc:
            logger.debug("Presence heartbeat failed: %s", exc)
