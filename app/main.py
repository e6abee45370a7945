from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
import logging

from app.config import Settings, load_settings
from app.database import Database
from app.errors import validation_exception_handler
from routes import bot_routes, call_log_routes, function_routes, system_routes, webhook_routes
from services.openmic_service import OpenMicService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_app(
    settings: Optional[Settings] = None,
    openmic: Optional[OpenMicService] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the application and its collaborators.

    Raises ``ConfigError`` when DATABASE_URL is missing, so a misconfigured
    process fails at startup instead of on the first request.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    # ------------------------------------------------------------------ #
    #  DB init                                                            #
    # ------------------------------------------------------------------ #
    database = database or Database(settings.database_url)
    database.create_schema()

    openmic = openmic or OpenMicService(
        api_key=settings.openmic_api_key,
        base_url=settings.openmic_base_url,
        app_url=settings.app_url,
        timeout=settings.openmic_timeout,
    )

    # ------------------------------------------------------------------ #
    #  App                                                                #
    # ------------------------------------------------------------------ #
    app = FastAPI(
        title="Intake Bot Dashboard",
        description=(
            "Backend for medical, legal and receptionist intake bots on OpenMic. "
            "Creates and syncs bots, serves the pre-call, post-call and function "
            "webhooks, and lists call logs."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.openmic = openmic

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ------------------------------------------------------------------ #
    #  Routers                                                            #
    # ------------------------------------------------------------------ #
    for module in (bot_routes, call_log_routes, webhook_routes, function_routes, system_routes):
        app.include_router(module.router, prefix="/api")

    # ------------------------------------------------------------------ #
    #  Root & Config                                                      #
    # ------------------------------------------------------------------ #

    @app.get("/", tags=["Health"])
    def root():
        return {
            "message": "Intake Bot Dashboard is running",
            "version": "1.0.0",
            "docs": "/docs",
            "webhooks": {
                "pre_call": f"{settings.app_url}/api/pre-call",
                "post_call": f"{settings.app_url}/api/post-call",
            },
        }

    @app.get("/config/check", tags=["Health"])
    def check_config():
        """Report which settings are loaded, without leaking secrets."""
        key = settings.openmic_api_key
        return {
            "status": "ok",
            "openmic_api_key_loaded": bool(key),
            "openmic_api_key_prefix": key[:10] + "..." if key else None,
            "openmic_base_url": settings.openmic_base_url,
            "app_url": settings.app_url,
            "verify_webhook_signatures": settings.verify_webhook_signatures,
            "database_dialect": database.engine.dialect.name,
        }

    logger.info(
        "App ready | db=%s | openmic_configured=%s",
        database.engine.dialect.name, openmic.configured,
    )
    return app


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=8000)
