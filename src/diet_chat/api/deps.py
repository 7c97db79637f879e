"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import AuthError
from diet_chat.application.ports.auth import TokenVerifier
from diet_chat.config import settings
from diet_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from diet_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from diet_chat.infrastructure.db.session import AsyncSessionLocal
from diet_chat.infrastructure.db.uow import SqlAlchemyUoW
from diet_chat.services.notification_dispatcher import NotificationDispatcher
from diet_chat.services.presence_service import PresenceTracker

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def authenticate(token: str | None) -> Principal:
    if not token:
        raise AuthError("Unauthorized")
    try:
        return await get_verifier().verify(token)
    except AuthError:
        raise
    except Exception as exc:
        raise AuthError("Unauthorized") from exc


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal:
    return await authenticate(credentials.credentials if credentials else None)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_beacon_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
    access_token: Annotated[str | None, Query()] = None,
) -> Principal:
    """Like get_current_principal, but also accepts `?access_token=`.

    Teardown beacons cannot set an Authorization header.
    """
    token = credentials.credentials if credentials else access_token
    return await authenticate(token)


BeaconPrincipal = Annotated[Principal, Depends(get_beacon_principal)]


def get_presence_tracker(request: Request) -> PresenceTracker:
    return request.app.state.presence


PresenceDep = Annotated[PresenceTracker, Depends(get_presence_tracker)]


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
