"""One-shot purge of meal photos past their 12-hour expiry. Schedule hourly."""
from __future__ import annotations

import asyncio
import logging

from diet_chat.infrastructure.db.session import dispose_engine
from diet_chat.infrastructure.db.uow import uow_scope
from diet_chat.services import message_service

logger = logging.getLogger(__name__)


async def run_photo_cleanup() -> int:
    try:
        async with uow_scope() as uow:
            deleted = await message_service.purge_expired_photos(uow)
    finally:
        await dispose_engine()
    logger.info("Deleted %d expired photos", deleted)
    return deleted


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_photo_cleanup())


if __name__ == "__main__":
    main()
