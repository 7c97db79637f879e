from __future__ import annotations

from typing import Protocol

from diet_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Turns a bearer token into the caller's `{user_id, role}`.

    Raise on a bad signature or expiry; claims that do not name a client or
    dietitian raise AuthError.
    """

    async def verify(self, token: str) -> Principal: ...
