from __future__ import annotations

import pytest

from diet_chat.application.exceptions import ForbiddenError, ValidationError
from diet_chat.domain.value_objects.enums import RealtimeEvent
from diet_chat.services import read_state_service
from tests.conftest import CLIENT_USER_ID, DIETITIAN_USER_ID, KEY, make_message


@pytest.fixture
def thread(uow):
    uow.messages._messages.extend([
        make_message(1, sender_id=CLIENT_USER_ID),
        make_message(2, sender_id=DIETITIAN_USER_ID),
        make_message(3, sender_id=DIETITIAN_USER_ID),
        make_message(4, sender_id=DIETITIAN_USER_ID, is_read=True),
    ])
    return uow


@pytest.mark.asyncio
async def test_mark_read_flips_only_other_party_unread(client_principal, thread, clock):
    marked = await read_state_service.mark_read(KEY, client_principal, [1, 2, 3, 4], thread, clock=clock)

    assert marked == 2
    by_id = {m.id: m for m in thread.messages._messages}
    assert by_id[1].is_read is False
    assert by_id[2].is_read is True and by_id[2].read_at == clock.now()
    assert by_id[3].is_read is True


@pytest.mark.asyncio
async def test_mark_read_emits_update_event_per_changed_row(client_principal, thread, clock):
    await read_state_service.mark_read(KEY, client_principal, [3, 2, 2], thread, clock=clock)

    assert [r["event_type"] for r in thread.outbox._records] == [RealtimeEvent.MESSAGE_UPDATED] * 2
    payload = thread.outbox._records[0]["payload"]
    assert payload == {
        "id": 2,
        "client_id": KEY.client_id,
        "diet_id": KEY.diet_id,
        "is_read": True,
        "read_at": clock.now().isoformat(),
    }


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(client_principal, thread, clock):
    assert await read_state_service.mark_read(KEY, client_principal, [2, 3], thread, clock=clock) == 2
    first_read_at = thread.messages._messages[1].read_at
    clock.advance(minutes=5)

    assert await read_state_service.mark_read(KEY, client_principal, [2, 3], thread, clock=clock) == 0
    assert thread.messages._messages[1].read_at == first_read_at
    assert len(thread.outbox._records) == 2


@pytest.mark.asyncio
async def test_mark_own_messages_is_a_noop(client_principal, thread, clock):
    assert await read_state_service.mark_read(KEY, client_principal, [1], thread, clock=clock) == 0
    assert thread.outbox._records == []


@pytest.mark.asyncio
@pytest.mark.parametrize("ids", [None, [], "1,2", {"a": 1}])
async def test_mark_read_requires_id_array(client_principal, thread, ids):
    with pytest.raises(ValidationError, match="messageIds array is required"):
        await read_state_service.mark_read(KEY, client_principal, ids, thread)


@pytest.mark.asyncio
@pytest.mark.parametrize("ids", [[0], [-3], ["2"], [True], [1.5]])
async def test_mark_read_rejects_bad_ids(client_principal, thread, ids):
    with pytest.raises(ValidationError, match="positive integers"):
        await read_state_service.mark_read(KEY, client_principal, ids, thread)


@pytest.mark.asyncio
async def test_mark_read_forbidden_for_stranger(stranger_principal, thread):
    with pytest.raises(ForbiddenError):
        await read_state_service.mark_read(KEY, stranger_principal, [2], thread)
    assert thread._committed is False
