from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from diet_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from diet_chat.api.middleware.metrics import RequestTimingMiddleware
from diet_chat.api.v1.routers import (
    clients,
    cron,
    health,
    messages,
    presence,
    push,
    ws,
)
from diet_chat.application.exceptions import (
    AppError,
    AuthError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from diet_chat.config import settings
from diet_chat.domain.entities.conversation import ConversationKey
from diet_chat.domain.value_objects.enums import RealtimeEvent
from diet_chat.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from diet_chat.infrastructure.db.session import dispose_engine
from diet_chat.infrastructure.db.uow import uow_scope
from diet_chat.infrastructure.presence.redis_presence import RedisPresenceStore
from diet_chat.infrastructure.push.expo import ExpoPushSender
from diet_chat.infrastructure.push.webpush import VapidWebPushSender
from diet_chat.services.notification_dispatcher import NotificationDispatcher
from diet_chat.services.presence_service import PresenceTracker

logger = logging.getLogger(__name__)


async def _on_realtime_event(event: RealtimeEvent, data: dict[str, Any]) -> None:
    """Forward a relayed outbox event to local WS subscribers of its conversation."""
    try:
        key = ConversationKey(int(data["client_id"]), int(data["diet_id"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("Dropping realtime event %s without conversation key", event)
        return
    await ws.get_manager().broadcast_to_conversation(key, event.value, data)


def _build_web_sender() -> VapidWebPushSender | None:
    if not settings.web_push_configured:
        logger.warning(
            "Web push is not fully configured. Set WEB_PUSH_PUBLIC_KEY and WEB_PUSH_PRIVATE_KEY."
        )
        return None
    assert settings.WEB_PUSH_PRIVATE_KEY is not None
    return VapidWebPushSender(
        settings.WEB_PUSH_PRIVATE_KEY,
        settings.vapid_subject,
        timeout=settings.PUSH_HTTP_TIMEOUT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    app.state.push_http = httpx.AsyncClient(timeout=settings.PUSH_HTTP_TIMEOUT)
    app.state.presence = PresenceTracker(
        RedisPresenceStore(
            app.state.redis,
            prefix=settings.PRESENCE_KEY_PREFIX,
            retention_seconds=settings.PRESENCE_RETENTION_SECONDS,
        ),
        ttl_seconds=settings.PRESENCE_TTL_SECONDS,
    )
    app.state.dispatcher = NotificationDispatcher(
        app.state.presence,
        ExpoPushSender(app.state.push_http, settings.EXPO_PUSH_URL),
        _build_web_sender(),
        uow_scope,
        native_body_limit=settings.NATIVE_BODY_LIMIT,
        web_body_limit=settings.WEB_BODY_LIMIT,
    )

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _on_realtime_event,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await app.state.push_http.aclose()
    await app.state.redis.aclose()
    await dispose_engine()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Diet Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(presence.router)
    app.include_router(messages.router)
    app.include_router(clients.router)
    app.include_router(push.router)
    app.include_router(cron.router)
    app.include_router(ws.router)

    return app


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": detail})


_STATUS_BY_ERROR: dict[type[AppError], int] = {
    ValidationError: 400,
    AuthError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        status_code = _STATUS_BY_ERROR.get(type(exc))
        if status_code is None:
            logger.error("Unmapped application error: %r", exc)
            return _error(500, "Internal server error")
        return _error(status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(_req: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        return _error(400, str(first.get("msg", "Invalid request")))

    @app.exception_handler(Exception)
    async def _unexpected(req: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", req.method, req.url.path)
        return _error(500, "Internal server error")
