"""Pure merge of message batches into a conversation list.

Every arrival path (bulk load, realtime insert, poll tick, local send)
goes through `merge_messages`, so dedup-by-id and ordering are enforced
in one place.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from diet_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class MergeResult:
    messages: tuple[Message, ...]
    added: tuple[Message, ...]
    cursor: int | None


def merge_messages(
    current: Sequence[Message],
    incoming: Iterable[Message],
    cursor: int | None = None,
) -> MergeResult:
    """Append messages whose id is not yet present; keep ascending id order.

    The returned cursor is the highest id merged so far and never goes
    below the `cursor` passed in.
    """
    known = {m.id for m in current}
    added: list[Message] = []
    for message in incoming:
        if message.id in known:
            continue
        known.add(message.id)
        added.append(message)

    if not added:
        return MergeResult(tuple(current), (), _advance(cursor, current))

    added.sort(key=lambda m: m.id)
    if current and added[0].id < current[-1].id:
        merged = tuple(sorted((*current, *added), key=lambda m: m.id))
    else:
        merged = (*current, *added)
    return MergeResult(merged, tuple(added), _advance(cursor, added))


def _advance(cursor: int | None, messages: Sequence[Message]) -> int | None:
    if not messages:
        return cursor
    top = max(m.id for m in messages)
    return top if cursor is None else max(cursor, top)


def apply_read_update(
    current: Sequence[Message],
    message_id: int,
    is_read: bool,
    read_at: datetime | None,
) -> tuple[Message, ...]:
    """Patch isRead/readAt of one message. Read state only moves forward."""
    if not is_read:
        return tuple(current)
    return tuple(
        dataclasses.replace(m, is_read=True, read_at=read_at or m.read_at)
        if m.id == message_id and not m.is_read
        else m
        for m in current
    )


def mark_locally_read(
    current: Sequence[Message],
    message_ids: Iterable[int],
    read_at: datetime,
) -> tuple[Message, ...]:
    ids = set(message_ids)
    return tuple(
        dataclasses.replace(m, is_read=True, read_at=read_at)
        if m.id in ids and not m.is_read
        else m
        for m in current
    )
