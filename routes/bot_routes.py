"""
Bot Routes

GET    /api/bots            list bots (``?sync=true`` pulls from OpenMic first)
POST   /api/bots            create a bot locally and, best-effort, on OpenMic
GET    /api/bots/{id}       one bot
PATCH  /api/bots/{id}       rename / re-domain a bot
DELETE /api/bots/{id}       delete a bot and its call logs
POST   /api/bots/sync       reconcile OpenMic bots into the local store
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.database import Database
from app.dependencies import get_database, get_openmic_service
from app.errors import SCHEMA_MISSING_ERROR, error_response, failure_response
from app.schemas import CreateBotRequest, UpdateBotRequest
from routes.serializers import serialize_bot
from services.bot_sync import sync_remote_bots
from services.openmic_service import OpenMicService, make_local_uid

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bots"])


# ------------------------------------------------------------------ #
#   GET /api/bots                                                     #
# ------------------------------------------------------------------ #

@router.get("/bots", summary="List bots, optionally syncing from OpenMic first")
async def list_bots(
    sync: bool = False,
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    try:
        exists, _ = database.schema_exists()
        if not exists:
            return error_response(SCHEMA_MISSING_ERROR, 503)

        sync_report = None
        if sync:
            logger.info("Syncing bots from OpenMic before listing")
            fetched = await openmic.fetch_bots()
            if fetched.success and fetched.data:
                sync_report = sync_remote_bots(database, fetched.data).to_dict()
            else:
                logger.info("No bots found in OpenMic or sync failed: %s", fetched.error)

        bots = database.list_bots()
        content = {
            "success": True,
            "data": [serialize_bot(bot, count) for bot, count in bots],
        }
        if sync_report is not None:
            content["sync"] = sync_report
        return content

    except Exception as e:
        logger.error("Error fetching bots: %s", e)
        return failure_response(e, "Failed to fetch bots", 500)


# ------------------------------------------------------------------ #
#   POST /api/bots                                                    #
# ------------------------------------------------------------------ #

@router.post("/bots", status_code=201, summary="Create a bot")
async def create_bot(
    request: CreateBotRequest,
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    """
    Registers the bot on OpenMic (best-effort) and always stores it locally.

    The uid is the platform-assigned id when OpenMic accepted the bot,
    otherwise the caller's ``uid`` if given, otherwise ``{domain}_{epoch_ms}``.
    """
    domain = request.domain.value
    try:
        result = await openmic.create_bot(
            name=request.name,
            domain=domain,
            prompt=request.prompt,
            voice=request.voice,
        )
        if result.success and result.bot_id:
            uid = result.bot_id
        else:
            uid = request.uid or result.bot_id or make_local_uid(domain)

        bot = database.create_bot(uid=uid, name=request.name, domain=domain)
    except Exception as e:
        logger.error("Error creating bot: %s", e)
        return failure_response(e, "Failed to create bot", 400)

    logger.info(
        "Bot created | local_id=%s | uid=%s | openmic_sync=%s | openmic_error=%s",
        bot.id, uid, result.success, result.error,
    )

    if result.success:
        message = "Bot created successfully in both systems"
    else:
        message = (
            "Bot created locally. To complete integration: 1) Go to OpenMic dashboard, "
            f"2) Create a new bot, 3) Use UID: {uid}, 4) Configure webhooks with your ngrok URL"
        )

    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "data": serialize_bot(bot, 0),
            "openMicSync": result.success,
            "openMicInstructions": result.error,
            "message": message,
        },
    )


# ------------------------------------------------------------------ #
#   POST /api/bots/sync                                               #
# ------------------------------------------------------------------ #

@router.post("/bots/sync", summary="Pull bots from OpenMic into the local store")
async def sync_bots(
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    logger.info("Starting bot sync from OpenMic")
    try:
        fetched = await openmic.fetch_bots()
        if not fetched.success:
            return error_response(fetched.error or "Failed to fetch bots from OpenMic", 400)

        report = sync_remote_bots(database, fetched.data or [])
        return {"success": True, "data": report.to_dict()}

    except Exception as e:
        logger.error("Error syncing bots: %s", e)
        return error_response(f"Failed to sync bots: {e}", 500)


# ------------------------------------------------------------------ #
#   /api/bots/{bot_id}                                                #
# ------------------------------------------------------------------ #

@router.get("/bots/{bot_id}", summary="Get one bot")
async def get_bot(bot_id: str, database: Database = Depends(get_database)):
    try:
        bot = database.find_bot(id=bot_id)
        if not bot:
            return error_response("Bot not found", 404)
        return {"success": True, "data": serialize_bot(bot, database.count_bot_call_logs(bot.id))}
    except Exception as e:
        logger.error("Error fetching bot %s: %s", bot_id, e)
        return failure_response(e, "Failed to fetch bot", 500)


@router.patch("/bots/{bot_id}", summary="Update a bot")
async def update_bot(
    bot_id: str,
    request: UpdateBotRequest,
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    try:
        current = database.find_bot(id=bot_id)
        if not current:
            return error_response("Bot not found", 404)

        platform = None
        if current.uid and (request.name or request.prompt or request.voice):
            platform = await openmic.update_bot(
                current.uid, name=request.name, prompt=request.prompt, voice=request.voice
            )
            if not platform.success:
                logger.warning("OpenMic update failed for %s: %s", current.uid, platform.error)

        bot = database.update_bot(bot_id, request.model_dump(mode="json", exclude_none=True))
        if not bot:
            return error_response("Bot not found", 404)

        return {
            "success": True,
            "data": serialize_bot(bot),
            "openMicSync": platform.success if platform else None,
            "openMicError": platform.error if platform else None,
        }
    except Exception as e:
        logger.error("Error updating bot %s: %s", bot_id, e)
        return failure_response(e, "Failed to update bot", 400)


@router.delete("/bots/{bot_id}", summary="Delete a bot and its call logs")
async def delete_bot(
    bot_id: str,
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    try:
        current = database.find_bot(id=bot_id)
        if not current:
            return error_response("Bot not found", 404)

        platform = None
        if current.uid:
            platform = await openmic.delete_bot(current.uid)
            if not platform.success:
                logger.warning("OpenMic delete failed for %s: %s", current.uid, platform.error)

        database.delete_bot(bot_id)
        logger.info("Bot deleted | local_id=%s | uid=%s", bot_id, current.uid)
        return {
            "success": True,
            "openMicSync": platform.success if platform else None,
            "openMicError": platform.error if platform else None,
        }
    except Exception as e:
        logger.error("Error deleting bot %s: %s", bot_id, e)
        return failure_response(e, "Failed to delete bot", 400)
