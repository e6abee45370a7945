"""
OpenMic Webhook Routes

POST /api/pre-call    OpenMic asks for caller context before the call starts
POST /api/post-call   OpenMic delivers the transcript after the call ends

Both endpoints always answer 200 with ``success: true``. Internal failures are
reported in an ``error`` field instead, so OpenMic does not keep redelivering
a webhook that cannot be processed.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from app.config import Settings
from app.database import Database
from app.dependencies import get_database, get_openmic_service, get_settings
from app.models import Bot, BotDomain
from app.schemas import CallMetadata, PostCallPayload, PreCallPayload
from services.openmic_service import OpenMicService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])

SIGNATURE_HEADER = "x-openmic-signature"
INVALID_SIGNATURE = "Invalid webhook signature"


def _webhook_error(kind: str, message: str) -> Dict[str, Any]:
    return {
        "success": True,
        "error": message,
        "data": {"message": f"{kind} webhook processed with error", "error": message},
    }


def _signature_rejected(
    body: bytes, request: Request, settings: Settings, openmic: OpenMicService
) -> bool:
    if not settings.verify_webhook_signatures:
        return False
    valid = openmic.verify_webhook_signature(body, request.headers.get(SIGNATURE_HEADER))
    if not valid:
        logger.warning("Invalid OpenMic webhook signature on %s; body ignored", request.url.path)
    return not valid


# ------------------------------------------------------------------ #
#   POST /api/pre-call                                                #
# ------------------------------------------------------------------ #

@router.post("/pre-call", summary="OpenMic pre-call webhook")
async def pre_call_webhook(
    request: Request,
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
    settings: Settings = Depends(get_settings),
):
    try:
        body_bytes = await request.body()
        if _signature_rejected(body_bytes, request, settings, openmic):
            return _webhook_error("Pre-call", INVALID_SIGNATURE)

        event = PreCallPayload.parse(json.loads(body_bytes)).normalize()
        logger.info("Pre-call webhook | bot_uid=%s | call_id=%s | event=%s", event.botUid, event.callId, event.event)

        bot = database.find_bot(uid=event.botUid)
        if not bot and event.botUid != "unknown":
            logger.info("Bot with uid %s not found, falling back to a medical bot", event.botUid)
            bot = database.find_first_bot(domain=BotDomain.medical.value)

        domain = bot.domain if bot else BotDomain.medical.value
        bot_name = bot.name if bot else "Default Medical Bot"
        pre_call_data = openmic.generate_pre_call_data(domain, event.metadata)

        logger.info("Pre-call data served for bot %s (%s) | call_id=%s", bot_name, domain, event.callId)
        return {"success": True, "data": pre_call_data}

    except Exception as e:
        logger.error("Error processing pre-call webhook: %s", e)
        return _webhook_error("Pre-call", str(e) or e.__class__.__name__)


# ------------------------------------------------------------------ #
#   POST /api/post-call                                               #
# ------------------------------------------------------------------ #

def _resolve_post_call_bot(database: Database, bot_uid: str) -> Optional[Bot]:
    bot = database.find_bot(uid=bot_uid)
    if not bot and bot_uid == "unknown":
        logger.info("Bot uid unknown, using the most recently updated bot")
        bot = database.find_first_bot(most_recent=True)
    if not bot and bot_uid != "unknown":
        logger.info("Bot with uid %s not found, falling back to a medical bot", bot_uid)
        bot = database.find_first_bot(domain=BotDomain.medical.value)
    if not bot:
        bot = database.find_first_bot()
    return bot


@router.post("/post-call", summary="OpenMic post-call webhook")
async def post_call_webhook(
    request: Request,
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
    settings: Settings = Depends(get_settings),
):
    try:
        body_bytes = await request.body()
        if _signature_rejected(body_bytes, request, settings, openmic):
            return _webhook_error("Post-call", INVALID_SIGNATURE)

        event = PostCallPayload.parse(json.loads(body_bytes)).normalize()
        logger.info(
            "Post-call webhook | bot_uid=%s | call_id=%s | transcript_len=%d",
            event.botUid, event.callId, len(event.transcript),
        )

        bot = _resolve_post_call_bot(database, event.botUid)
        if not bot:
            logger.warning("No bot in database; post-call webhook acknowledged without storing")
            return {"success": True, "data": {"message": "Post-call webhook processed - no bot found"}}

        metadata = CallMetadata.model_validate({
            **event.metadata,
            "callId": event.callId,
            "processedAt": datetime.now(timezone.utc).isoformat(),
            "webhookProcessed": True,
        })
        call_log = database.create_call_log(
            bot_id=bot.id,
            transcript=event.transcript,
            metadata=metadata.to_json(),
        )

        logger.info(
            "Post-call stored for bot %s | call_id=%s | log_id=%s",
            bot.name, event.callId, call_log.id,
        )
        return {"success": True, "data": {"logId": call_log.id}}

    except Exception as e:
        logger.error("Error processing post-call webhook: %s", e)
        return _webhook_error("Post-call", str(e) or e.__class__.__name__)
