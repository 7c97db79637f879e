from __future__ import annotations

import logging

from fastapi import APIRouter, Header

from diet_chat.api.deps import UoWDep
from diet_chat.application.exceptions import AuthError
from diet_chat.config import settings
from diet_chat.services import message_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cron", tags=["cron"])


@router.api_route("/cleanup-photos", methods=["GET", "POST"])
async def cleanup_photos(
    uow: UoWDep,
    authorization: str | None = Header(None),
) -> dict[str, object]:
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        logger.warning("Unauthorized cron attempt on cleanup-photos")
        raise AuthError("Unauthorized")
    deleted = await message_service.purge_expired_photos(uow)
    logger.info("Photo cleanup removed %d expired photos", deleted)
    return {"success": True, "deleted": deleted}
