"""
Health, diagnostics and test data.

GET  /api/health          database connectivity + schema readiness
GET  /api/debug/openmic   is the OpenMic key configured, and does fetch_bots() work
POST /api/test-call       store a canned call log for the first bot
"""

import logging
import time
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata

from fastapi import APIRouter, Depends

from app.database import Database
from app.dependencies import get_database, get_openmic_service
from app.errors import error_response, failure_response
from app.schemas import CallMetadata, FunctionCallRecord
from services.domain_templates import DEFAULT_LOOKUP_IDS, DOMAIN_FUNCTIONS, describe_details
from services.openmic_service import OpenMicService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _version() -> str:
    try:
        return importlib_metadata.version("intake-bot-dashboard")
    except importlib_metadata.PackageNotFoundError:
        return "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", summary="Database and schema health")
def health(database: Database = Depends(get_database)):
    try:
        database.ping()
    except Exception as e:
        logger.error("Health check failed: %s", e)
        return error_response(
            "Database connection failed",
            503,
            extra={
                "status": "unhealthy",
                "timestamp": _now(),
                "services": {"database": "disconnected", "api": "operational", "schema": "unknown"},
            },
        )

    exists, schema_error = database.schema_exists()
    content = {
        "status": "healthy" if exists else "unhealthy",
        "timestamp": _now(),
        "services": {
            "database": "connected",
            "api": "operational",
            "schema": "ready" if exists else "missing",
        },
        "version": _version(),
    }
    logger.info("Health check performed: %s", content["status"])
    if not exists:
        content["schemaError"] = schema_error
        return error_response(
            "Database tables not found. Please run the initialization script.", 503, extra=content
        )
    return {"success": True, **content}


@router.get("/debug/openmic", summary="Check the OpenMic API connection")
async def debug_openmic(openmic: OpenMicService = Depends(get_openmic_service)):
    logger.info("Testing OpenMic API connection (key configured: %s)", openmic.configured)
    try:
        result = await openmic.fetch_bots()
        return {
            "success": True,
            "data": {
                "apiKeyConfigured": openmic.configured,
                "apiKeyLength": len(openmic.api_key),
                "baseUrl": openmic.base_url,
                "fetchResult": result.to_dict(),
                "timestamp": _now(),
            },
        }
    except Exception as e:
        logger.error("OpenMic debug check failed: %s", e)
        return error_response(
            str(e) or "Unknown error",
            500,
            extra={"data": {"apiKeyConfigured": openmic.configured, "timestamp": _now()}},
        )


def _test_transcript(bot_name: str, domain: str, function_name: str, lookup_id: str, result: str) -> str:
    return (
        f"Assistant: Hello, I'm {bot_name}, your {domain} assistant. How can I help you today?\n"
        f"User: Hi, I need to check my information for ID {lookup_id}.\n"
        f"Assistant: Let me look up your information right away. I'm calling the {function_name} function with your ID.\n"
        f"[Function Call: {function_name}(id: \"{lookup_id}\")]\n"
        f"[Function Result: {result}]\n"
        "Assistant: I found your information. Is there anything else I can help you with today?\n"
        "User: That's perfect, thank you!\n"
        "Assistant: You're welcome! Have a great day."
    )


@router.post("/test-call", summary="Create a canned call log for the first bot")
def create_test_call(
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    try:
        bot = database.find_first_bot()
        if not bot:
            return error_response("No bot found. Please create a bot first.", 404)

        domain = bot.domain if bot.domain in DOMAIN_FUNCTIONS else "medical"
        function_name = DOMAIN_FUNCTIONS[domain][0]
        lookup_id = DEFAULT_LOOKUP_IDS[domain]
        details = openmic.generate_fetch_details(lookup_id, domain)
        result = describe_details(domain, details)

        metadata = CallMetadata(
            callId=f"test_call_{int(time.time() * 1000)}",
            processedAt=_now(),
            webhookProcessed=True,
            domain=bot.domain,
            duration=120,
            cost=0.15,
            sentiment="positive",
            functionCalls=[
                FunctionCallRecord(
                    name=function_name,
                    arguments={"id": lookup_id},
                    result=details,
                    timestamp=_now(),
                )
            ],
            preCallData=openmic.generate_pre_call_data(domain),
        )
        call_log = database.create_call_log(
            bot_id=bot.id,
            transcript=_test_transcript(bot.name, bot.domain, function_name, lookup_id, result),
            metadata=metadata.to_json(),
        )
        logger.info("Test call log %s created for bot %s", call_log.id, bot.name)
        return {
            "success": True,
            "data": {
                "message": "Test call log created successfully",
                "logId": call_log.id,
                "botName": bot.name,
                "domain": bot.domain,
            },
        }
    except Exception as e:
        logger.error("Error creating test call: %s", e)
        return failure_response(e, "Failed to create test call log", 500)
