from __future__ import annotations

import asyncio

import pytest

from diet_chat.client.read_receipts import ReadReceiptBatcher
from tests.conftest import CLIENT_USER_ID, DIETITIAN_USER_ID, make_message


class RecordingMarkRead:
    def __init__(self, fail_times: int = 0) -> None:
        self.calls: list[list[int]] = []
        self._fail_times = fail_times

    async def __call__(self, ids: list[int]) -> int:
        self.calls.append(list(ids))
        if self._fail_times:
            self._fail_times -= 1
            raise ConnectionError("offline")
        return len(ids)


def _incoming(*ids: int, **kwargs):
    return [make_message(i, sender_id=DIETITIAN_USER_ID, **kwargs) for i in ids]


@pytest.mark.asyncio
async def test_batches_visible_unread_after_dwell():
    mark_read = RecordingMarkRead()
    marked: list[list[int]] = []
    batcher = ReadReceiptBatcher(CLIENT_USER_ID, mark_read, dwell=0.01, on_marked=marked.append)

    batcher.offer(_incoming(3, 1))
    batcher.offer(_incoming(2))
    await asyncio.sleep(0.05)

    assert mark_read.calls == [[1, 2, 3]]
    assert marked == [[1, 2, 3]]


@pytest.mark.asyncio
async def test_own_and_already_read_messages_are_excluded():
    mark_read = RecordingMarkRead()
    batcher = ReadReceiptBatcher(CLIENT_USER_ID, mark_read, dwell=10)

    batcher.offer([
        make_message(1, sender_id=CLIENT_USER_ID),
        make_message(2, sender_id=DIETITIAN_USER_ID, is_read=True),
        make_message(3, sender_id=DIETITIAN_USER_ID),
    ])

    assert batcher.pending == frozenset({3})
    assert await batcher.flush() == [3]


@pytest.mark.asyncio
async def test_overlapping_offers_do_not_resend():
    mark_read = RecordingMarkRead()
    batcher = ReadReceiptBatcher(CLIENT_USER_ID, mark_read, dwell=10)

    batcher.offer(_incoming(1, 2))
    await batcher.flush()
    batcher.offer(_incoming(1, 2, 3))
    await batcher.flush()

    assert mark_read.calls == [[1, 2], [3]]


@pytest.mark.asyncio
async def test_nothing_pending_sends_nothing():
    mark_read = RecordingMarkRead()
    batcher = ReadReceiptBatcher(CLIENT_USER_ID, mark_read, dwell=0.01)

    batcher.offer(_incoming(1, is_read=True))
    await asyncio.sleep(0.03)

    assert await batcher.flush() == []
    assert mark_read.calls == []


@pytest.mark.asyncio
async def test_failed_batch_can_be_retried():
    mark_read = RecordingMarkRead(fail_times=1)
    marked: list[list[int]] = []
    batcher = ReadReceiptBatcher(CLIENT_USER_ID, mark_read, dwell=10, on_marked=marked.append)

    batcher.offer(_incoming(1))
    assert await batcher.flush() == []
    batcher.offer(_incoming(1))
    assert await batcher.flush() == [1]
    assert marked == [[1]]


@pytest.mark.asyncio
async def test_close_drops_pending_without_sending():
    mark_read = RecordingMarkRead()
    batcher = ReadReceiptBatcher(CLIENT_USER_ID, mark_read, dwell=0.01)

    batcher.offer(_incoming(1))
    await batcher.close()
    await asyncio.sleep(0.03)

    assert mark_read.calls == []
