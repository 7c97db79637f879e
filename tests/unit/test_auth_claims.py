from __future__ import annotations

import jwt
import pytest

from diet_chat.application.exceptions import AuthError
from diet_chat.domain.value_objects.enums import SenderRole
from diet_chat.infrastructure.auth.claims import principal_from_claims
from diet_chat.infrastructure.auth.hs256_verifier import HS256Verifier


def test_claims_map_to_principal():
    principal = principal_from_claims({"sub": "20", "role": "dietitian"})

    assert principal.user_id == 20
    assert principal.role is SenderRole.DIETITIAN
    assert principal.is_client is False


@pytest.mark.parametrize("payload", [
    {"role": "client"},
    {"sub": "abc", "role": "client"},
    {"sub": "1"},
    {"sub": "1", "role": "admin"},
])
def test_unusable_claims_are_rejected(payload):
    with pytest.raises(AuthError):
        principal_from_claims(payload)


@pytest.mark.asyncio
async def test_hs256_verifier_round_trip():
    token = jwt.encode({"sub": "10", "role": "client"}, "unit-test-signing-secret-0123456789", algorithm="HS256")

    principal = await HS256Verifier("unit-test-signing-secret-0123456789").verify(token)

    assert principal.user_id == 10
    assert principal.is_client


@pytest.mark.asyncio
async def test_hs256_verifier_rejects_wrong_secret():
    token = jwt.encode({"sub": "10", "role": "client"}, "unit-test-signing-secret-0123456789", algorithm="HS256")

    with pytest.raises(jwt.InvalidTokenError):
        await HS256Verifier("another-signing-secret-0123456789").verify(token)
