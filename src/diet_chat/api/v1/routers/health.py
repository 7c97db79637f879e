from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from diet_chat.config import settings
from diet_chat.infrastructure.db.session import AsyncSessionLocal

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Ready when messages (Postgres), presence (Redis) and realtime fan-out all work."""
    errors: list[str] = []

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        errors.append(f"postgres: {exc}")

    state = request.app.state
    try:
        await state.redis.ping()
    except Exception as exc:  # noqa: BLE001
        errors.append(f"redis: {exc}")

    subscriber = getattr(state, "pubsub_subscriber", None)
    if subscriber is None or not subscriber.running:
        errors.append("realtime: pub/sub subscriber is not running")

    if errors:
        return JSONResponse(status_code=503, content={"status": "unavailable", "errors": errors})
    return JSONResponse(
        content={
            "status": "ready",
            "webPush": settings.web_push_configured,
            "presenceTtlSeconds": settings.PRESENCE_TTL_SECONDS,
        },
    )
