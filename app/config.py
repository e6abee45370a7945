"""
Environment-driven settings.

DATABASE_URL is mandatory: the service refuses to start without it.
OPENMIC_API_KEY is optional: without it every platform call degrades to a
local-only result carrying an explanatory error string.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_OPENMIC_BASE_URL = "https://api.openmic.ai/v1"
DEFAULT_APP_URL = "https://your-ngrok-url.ngrok.io"


class ConfigError(Exception):
    """Raised when required configuration is missing."""


class Settings(BaseModel):
    database_url: str = Field(..., min_length=1)
    openmic_api_key: str = ""
    openmic_base_url: str = DEFAULT_OPENMIC_BASE_URL
    app_url: str = DEFAULT_APP_URL
    verify_webhook_signatures: bool = False
    openmic_timeout: float = 30.0
    log_level: str = "INFO"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from the process environment (and .env, if present)."""
    load_dotenv(env_file)

    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        raise ConfigError(
            "DATABASE_URL is not set. Add it to your .env file."
        )

    return Settings(
        database_url=database_url,
        openmic_api_key=os.getenv("OPENMIC_API_KEY", "").strip(),
        openmic_base_url=os.getenv("OPENMIC_BASE_URL", DEFAULT_OPENMIC_BASE_URL).rstrip("/"),
        app_url=os.getenv("APP_URL", DEFAULT_APP_URL).rstrip("/"),
        verify_webhook_signatures=_env_flag("OPENMIC_VERIFY_WEBHOOKS"),
        openmic_timeout=float(os.getenv("OPENMIC_TIMEOUT", "30")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
