"""Telegram webhook endpoint.

Each update is decoded into at most one brief event and dispatched to the
engine before the response is sent, so a failure surfaces as a non-2xx
status and Telegram redelivers the update.
"""

import logging

from fastapi import APIRouter, Depends

from brief_engine.engine import BriefEngine

from brief_server.config import ServerSettings
from brief_server.dependencies import get_brief_engine, get_settings
from brief_server.updates import TelegramUpdate, decode_update

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


@router.post("/webhook/telegram")
async def telegram_webhook(
    update: TelegramUpdate,
    engine: BriefEngine = Depends(get_brief_engine),
    settings: ServerSettings = Depends(get_settings),
) -> dict:
    """Decode a Telegram update and hand it to the brief engine.

    Updates that are not for the brief are accepted and dropped.
    """
    event = decode_update(
        update,
        start_command=settings.start_command,
        cancel_command=settings.cancel_command,
    )
    if event is None:
        logger.debug("Update %d carries no brief event", update.update_id)
        return {"ok": True}

    await engine.dispatch(event)
    return {"ok": True}
