"""
OpenMicService: httpx wrapper around the OpenMic bot platform API.

Responsibilities:
  - create_bot()                → register a bot, trying several endpoint names
  - update_bot() / delete_bot() → best-effort mirror of local edits
  - fetch_bots()                → list remote bots, tolerating several response shapes
  - fetch_call_logs()           → page through the platform's call history
  - verify_webhook_signature()  → HMAC check of inbound webhook bodies
  - prompts, function manifests and demo records per domain

No call here raises on platform failure: every operation returns a
PlatformResult and the caller decides what to surface.
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx

from services import domain_templates

logger = logging.getLogger(__name__)

# Tried in order; the first 2xx wins.
CREATE_BOT_PATHS = ("agents", "agent", "bots", "bot", "create-agent", "create-bot")
FETCH_BOTS_PATHS = ("bots", "agents", "bot", "agent")

CREATED_ID_FIELDS = ("id", "agent_id", "uid", "bot_id", "agentId")
BOT_LIST_FIELDS = ("data", "agents", "bots")

MAX_CALL_LOG_LIMIT = 100
API_KEY_MISSING = "API key not configured"


def first_present(record: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    """Return the first of ``keys`` holding a non-empty value, as a string."""
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def make_local_uid(domain: str) -> str:
    return f"{domain}_{int(time.time() * 1000)}"


@dataclass
class PlatformResult:
    success: bool
    bot_id: Optional[str] = None
    data: Optional[List[Dict[str, Any]]] = None
    pagination: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        for key in ("bot_id", "data", "pagination", "error"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass
class CallLogQuery:
    bot_id: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    start_date: Optional[str] = None      # ISO 8601
    end_date: Optional[str] = None        # ISO 8601
    status: Optional[str] = None          # registered | ongoing | ended | error
    direction: Optional[str] = None       # inbound | outbound
    customer_id: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    call_type: Optional[str] = None       # phonecall | webcall

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.bot_id:
            params["bot_id"] = self.bot_id
        if self.limit is not None:
            params["limit"] = str(min(int(self.limit), MAX_CALL_LOG_LIMIT))
        if self.offset is not None:
            params["offset"] = str(max(int(self.offset), 0))
        if self.customer_id:
            params["customer_id"] = self.customer_id
        if self.from_number:
            params["from_number"] = self.from_number
        if self.to_number:
            params["to_number"] = self.to_number
        if self.status:
            params["call_status"] = self.status
        if self.direction:
            params["direction"] = self.direction
        if self.call_type:
            params["call_type"] = self.call_type
        if self.start_date:
            params["from_date"] = self.start_date
        if self.end_date:
            params["to_date"] = self.end_date
        return params


def _bots_from_response(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in BOT_LIST_FIELDS:
            if isinstance(payload.get(key), list):
                return payload[key]
        return [payload]
    return []


class OpenMicService:
    """
    Instantiate once per process (see app.main.create_app) and share.

    ``transport`` lets tests substitute an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.openmic.ai/v1",
        app_url: str = "https://your-ngrok-url.ngrok.io",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        if self.api_key:
            logger.info("OpenMicService initialized (base_url=%s)", self.base_url)
        else:
            logger.info("OpenMicService initialized without API key; platform calls are disabled")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    # ------------------------------------------------------------------ #
    #  Bots                                                               #
    # ------------------------------------------------------------------ #

    async def create_bot(
        self,
        name: str,
        domain: str,
        prompt: Optional[str] = None,
        voice: Optional[str] = None,
    ) -> PlatformResult:
        """
        Register a bot on OpenMic.

        Each path in CREATE_BOT_PATHS is tried until one answers 2xx. When none
        does, a local uid ``{domain}_{epoch_ms}`` is returned with
        ``success=False``; callers still create the local record with it.
        """
        if not self.configured:
            logger.warning("OpenMic API key not configured; creating %s locally only", name)
            return PlatformResult(success=False, bot_id=make_local_uid(domain), error=API_KEY_MISSING)

        payload = {
            "name": name,
            "prompt": prompt or self.get_domain_prompt(domain, name),
            "voice": voice or "alloy",
            "language": "en",
            "functions": self.get_domain_functions(domain),
        }

        try:
            async with self._client() as client:
                for path in CREATE_BOT_PATHS:
                    try:
                        logger.info("Trying OpenMic endpoint POST /%s", path)
                        response = await client.post(f"/{path}", json=payload)
                        logger.info("OpenMic POST /%s -> %s", path, response.status_code)
                        if response.is_success:
                            result = response.json()
                            bot_id = first_present(result, CREATED_ID_FIELDS) if isinstance(result, dict) else None
                            logger.info("Bot created on OpenMic via /%s | bot_id=%s", path, bot_id)
                            return PlatformResult(success=True, bot_id=bot_id)
                        if response.status_code != 404:
                            logger.warning(
                                "OpenMic error from /%s: %s - %s", path, response.status_code, response.text
                            )
                    except Exception as e:
                        logger.warning("Error trying OpenMic endpoint /%s: %s", path, e)
                        continue
        except Exception as e:
            logger.error("Error creating bot on OpenMic: %s", e)
            return PlatformResult(
                success=False,
                bot_id=make_local_uid(domain),
                error=f"Failed to create bot in OpenMic: {e}",
            )

        logger.warning("All OpenMic create endpoints failed; falling back to manual creation")
        return PlatformResult(
            success=False,
            bot_id=make_local_uid(domain),
            error="API endpoints not available - manual creation required",
        )

    async def update_bot(
        self,
        platform_id: str,
        name: Optional[str] = None,
        prompt: Optional[str] = None,
        voice: Optional[str] = None,
    ) -> PlatformResult:
        """Single PATCH; failures are reported, never retried."""
        if not self.configured:
            return PlatformResult(success=False, error=API_KEY_MISSING)

        body = {k: v for k, v in (("name", name), ("prompt", prompt), ("voice", voice)) if v is not None}
        logger.info("Updating OpenMic bot %s with %s", platform_id, body)
        try:
            async with self._client() as client:
                response = await client.patch(f"/bots/{platform_id}", json=body)
            logger.info("OpenMic update response: %s", response.status_code)
            if not response.is_success:
                logger.error("OpenMic update error: %s - %s", response.status_code, response.text)
                return PlatformResult(success=False, error=f"OpenMic API error: {response.status_code}")
            return PlatformResult(success=True, bot_id=platform_id)
        except Exception as e:
            logger.error("Error updating OpenMic bot %s: %s", platform_id, e)
            return PlatformResult(success=False, error="Failed to update bot in OpenMic")

    async def delete_bot(self, platform_id: str) -> PlatformResult:
        """Single DELETE; failures are reported, never retried."""
        if not self.configured:
            return PlatformResult(success=False, error=API_KEY_MISSING)

        logger.info("Deleting OpenMic bot %s", platform_id)
        try:
            async with self._client() as client:
                response = await client.delete(f"/bots/{platform_id}")
            logger.info("OpenMic delete response: %s", response.status_code)
            if not response.is_success:
                logger.error("OpenMic delete error: %s - %s", response.status_code, response.text)
                return PlatformResult(success=False, error=f"OpenMic API error: {response.status_code}")
            return PlatformResult(success=True, bot_id=platform_id)
        except Exception as e:
            logger.error("Error deleting OpenMic bot %s: %s", platform_id, e)
            return PlatformResult(success=False, error="Failed to delete bot from OpenMic")

    async def fetch_bots(self) -> PlatformResult:
        """
        List remote bots.

        A 401 stops immediately with an "Unauthorized" error. Any other failure
        moves on to the next candidate path; when all are exhausted the result
        is an empty, successful list.
        """
        if not self.configured:
            return PlatformResult(success=False, error=API_KEY_MISSING)

        async with self._client() as client:
            for path in FETCH_BOTS_PATHS:
                try:
                    response = await client.get(f"/{path}")
                except Exception as e:
                    logger.warning("Error fetching bots from /%s: %s", path, e)
                    continue
                logger.info("OpenMic GET /%s -> %s", path, response.status_code)
                if response.status_code == 401:
                    return PlatformResult(
                        success=False,
                        error="Unauthorized: OpenMic rejected the API key (401)",
                    )
                if not response.is_success:
                    continue
                try:
                    bots = _bots_from_response(response.json())
                except ValueError as e:
                    logger.warning("Unparseable bot list from /%s: %s", path, e)
                    continue
                logger.info("Fetched %d bots from OpenMic via /%s", len(bots), path)
                return PlatformResult(success=True, data=bots)

        logger.info("No OpenMic bot endpoint answered; treating as empty")
        return PlatformResult(success=True, data=[])

    # ------------------------------------------------------------------ #
    #  Calls                                                              #
    # ------------------------------------------------------------------ #

    async def fetch_call_logs(self, query: Optional[CallLogQuery] = None) -> PlatformResult:
        if not self.configured:
            return PlatformResult(success=False, error=API_KEY_MISSING)

        params = (query or CallLogQuery()).to_params()
        logger.info("Fetching OpenMic call logs | params=%s", params)
        try:
            async with self._client() as client:
                response = await client.get("/calls", params=params)
            if not response.is_success:
                logger.error("OpenMic call log error: %s - %s", response.status_code, response.text)
                return PlatformResult(
                    success=False,
                    error=f"OpenMic API error: {response.status_code} - {response.text}",
                )
            result = response.json()
            calls = (result.get("calls") or []) if isinstance(result, dict) else []
            pagination = result.get("pagination") if isinstance(result, dict) else None
            logger.info("Fetched %d OpenMic call logs", len(calls))
            return PlatformResult(success=True, data=calls, pagination=pagination)
        except Exception as e:
            logger.error("Error fetching OpenMic call logs: %s", e)
            return PlatformResult(success=False, error=f"Failed to fetch call logs from OpenMic: {e}")

    # ------------------------------------------------------------------ #
    #  Webhooks                                                           #
    # ------------------------------------------------------------------ #

    def verify_webhook_signature(self, payload: Any, signature: Optional[str]) -> bool:
        """
        Check ``signature`` against ``sha256=<hex HMAC-SHA256(api_key, payload)>``.

        Never raises; a missing signature or key is simply invalid.
        """
        if not signature or not self.api_key:
            return False
        try:
            body = payload if isinstance(payload, bytes) else str(payload).encode("utf-8")
            digest = hmac.new(self.api_key.encode("utf-8"), body, hashlib.sha256).hexdigest()
            return hmac.compare_digest(signature.encode("utf-8"), f"sha256={digest}".encode("utf-8"))
        except Exception as e:
            logger.error("Webhook signature verification failed: %s", e)
            return False

    # ------------------------------------------------------------------ #
    #  Domain content                                                     #
    # ------------------------------------------------------------------ #

    def get_domain_prompt(self, domain: str, bot_name: str) -> str:
        return domain_templates.domain_prompt(domain, bot_name)

    def get_domain_functions(self, domain: str) -> List[Dict[str, Any]]:
        return domain_templates.domain_functions(domain, self.app_url)

    @staticmethod
    def generate_pre_call_data(domain: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return domain_templates.pre_call_data(domain, metadata)

    @staticmethod
    def generate_fetch_details(record_id: str, domain: str) -> Dict[str, Any]:
        return domain_templates.fetch_details(record_id, domain)
