from __future__ import annotations

import jwt

from diet_chat.application.dto.principal import Principal
from diet_chat.infrastructure.auth.claims import principal_from_claims


class HS256Verifier:
    """Verify JWTs signed with the shared secret of the main application."""

    def __init__(self, secret: str, algorithm: str = "HS256", *, leeway: int = 10) -> None:
        if not secret:
            raise ValueError("JWT_SECRET must be set when JWT_VERIFY_MODE=hs256")
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            leeway=self._leeway,
            options={"require": ["sub"]},
        )
        return principal_from_claims(payload)
