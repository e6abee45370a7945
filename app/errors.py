"""JSON envelopes for failed requests."""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

DB_CONNECTION_ERROR = "Database connection failed. Please check your DATABASE_URL."
SCHEMA_MISSING_ERROR = "Database tables not found. Please run the database migration script first."


def error_response(message: str, status_code: int, extra: Optional[Dict[str, Any]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": message}
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def failure_response(exc: Exception, default_message: str, default_status: int = 500) -> JSONResponse:
    """
    Map an unexpected exception to an error envelope.

    Connectivity problems (any message mentioning "connect") become 503,
    uid collisions become 409; everything else gets the route's default.
    """
    if isinstance(exc, IntegrityError):
        return error_response("A bot with this uid already exists", 409)
    if "connect" in str(exc).lower():
        return error_response(DB_CONNECTION_ERROR, 503)
    return error_response(default_message, default_status)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Invalid request to %s: %s", request.url.path, exc.errors())
    return error_response(
        "Invalid request body",
        400,
        extra={"details": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
        ]},
    )
