from __future__ import annotations

from dataclasses import dataclass

from diet_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class NewPhoto:
    image_data: str


@dataclass(frozen=True, slots=True)
class FetchResult:
    messages: list[Message]
    unread_count: int | None = None


@dataclass(frozen=True, slots=True)
class UnreadSummary:
    total_unread: int
    unread_by_diet: dict[int, int]
