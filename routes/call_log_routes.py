"""
Call Log Routes

GET /api/call-logs   list call logs from OpenMic, the local store, or both

Query parameters: source (openmic | local | both, default openmic), botId,
limit (default 50, max 100), page (from 1), startDate, endDate, status,
direction, search.
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from app.database import CallLogFilter, Database
from app.dependencies import get_database, get_openmic_service
from app.errors import SCHEMA_MISSING_ERROR, error_response, failure_response
from routes.serializers import serialize_call_log
from services.openmic_service import CallLogQuery, OpenMicService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Call Logs"])

MAX_PAGE_SIZE = 100
CUSTOMER_ID_PATTERN = re.compile(r"^[a-f0-9-]+$")


def format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return "0s"
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    if minutes == 0:
        return f"{remaining}s"
    if remaining == 0:
        return f"{minutes}m"
    return f"{minutes}m {remaining}s"


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def map_platform_call(log: Dict[str, Any], bots: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Shape one OpenMic call record like a local call log.

    The owning bot is matched on ``agent_id``/``bot_id`` against local uids,
    then on ``domain``, then falls back to the first local bot.
    """
    bot_uid = log.get("agent_id") or log.get("bot_id")
    by_uid = {b["uid"]: b for b in bots}
    bot = by_uid.get(bot_uid) if bot_uid else None
    if bot is None and log.get("bot_id"):
        bot = by_uid.get(log["bot_id"])
    if bot is None and bots:
        if log.get("domain"):
            bot = next((b for b in bots if b["domain"] == log["domain"]), None)
        if bot is None:
            bot = bots[0]

    duration = _to_float(log.get("duration_seconds"))
    cost = _to_float(log.get("cost"))
    return {
        "id": log.get("call_id") or log.get("id"),
        "botId": bot["id"] if bot else None,
        "botUid": bot_uid,
        "bot": {
            "id": bot["id"] if bot else "",
            "name": bot["name"] if bot else "Unknown Bot",
            "domain": bot["domain"] if bot else "unknown",
        },
        "callerNumber": log.get("from_number") or log.get("caller_number") or "Unknown",
        "status": (log.get("status") or "unknown").lower(),
        "duration": duration,
        "formattedDuration": format_duration(duration),
        "cost": cost,
        "formattedCost": f"${cost:.2f}" if cost else "N/A",
        "recordingUrl": log.get("recording_url"),
        "transcript": log.get("transcript") or "",
        "metadata": log.get("metadata") or {},
        "createdAt": log.get("created_at") or datetime.now(timezone.utc).isoformat(),
        "endedAt": log.get("ended_at"),
        "direction": log.get("direction") or ("inbound" if log.get("to_number") else "outbound"),
        "source": "openmic",
    }


def _matches_search(record: Dict[str, Any], needle: str) -> bool:
    haystack = " ".join(
        str(part or "")
        for part in (
            record["bot"]["name"],
            record["callerNumber"],
            record["transcript"],
            record["status"],
        )
    ).lower()
    return needle.lower() in haystack


def _dedupe(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    out = []
    for record in records:
        meta = record.get("metadata") or {}
        key = meta.get("call_id") or meta.get("callId") or meta.get("sessionId") or record.get("id")
        if key in seen:
            continue
        seen.add(key)
        out.append(record)
    return out


@router.get("/call-logs", summary="List call logs")
async def list_call_logs(
    botId: Optional[str] = None,
    limit: int = 50,
    page: int = 1,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    status: Optional[str] = None,
    direction: Optional[str] = None,
    search: Optional[str] = None,
    source: str = Query("openmic", pattern="^(openmic|local|both)$"),
    database: Database = Depends(get_database),
    openmic: OpenMicService = Depends(get_openmic_service),
):
    limit = min(limit if limit > 0 else 50, MAX_PAGE_SIZE)
    page = max(page, 1)
    offset = (page - 1) * limit
    filters = {
        "botId": botId,
        "startDate": startDate,
        "endDate": endDate,
        "status": status,
        "direction": direction,
        "searchQuery": search,
    }

    try:
        exists, _ = database.schema_exists()
        if not exists:
            return error_response(SCHEMA_MISSING_ERROR, 503)

        bots = [
            {"id": b.id, "uid": b.uid, "name": b.name, "domain": b.domain}
            for b, _ in database.list_bots()
        ]

        records: List[Dict[str, Any]] = []
        total = 0
        openmic_error = None

        if source in ("openmic", "both"):
            bot_uid = next((b["uid"] for b in bots if b["id"] == botId), None) if botId else None
            query = CallLogQuery(
                bot_id=bot_uid,
                limit=limit,
                offset=offset,
                start_date=startDate,
                end_date=endDate,
                status=status or "ended",
                direction=direction,
            )
            if search and CUSTOMER_ID_PATTERN.match(search):
                query.customer_id = search

            fetched = await openmic.fetch_call_logs(query)
            if fetched.success:
                remote = [map_platform_call(log, bots) for log in fetched.data or []]
                if search:
                    remote = [r for r in remote if _matches_search(r, search)]
                records.extend(remote)
                total = (fetched.pagination or {}).get("total") or len(remote)
            else:
                openmic_error = fetched.error
                logger.warning("OpenMic call logs unavailable: %s", openmic_error)

        if source in ("local", "both"):
            flt = CallLogFilter(
                bot_id=botId,
                start_date=_parse_date(startDate),
                end_date=_parse_date(endDate),
                search=search,
                limit=limit,
                offset=offset,
            )
            local = [serialize_call_log(log) for log in database.list_call_logs(flt)]
            local_total = database.count_call_logs(flt)
            if source == "local":
                records, total = local, local_total
            else:
                records = _dedupe(records + local)
                total = len(records)

        content = {
            "success": True,
            "data": records,
            "pagination": {
                "total": total,
                "page": page,
                "pageSize": limit,
                "pageCount": math.ceil(total / limit) if limit else 0,
            },
            "filters": filters,
        }
        if openmic_error:
            content["openMicError"] = openmic_error
        return content

    except ValueError as e:
        logger.warning("Invalid call log filter: %s", e)
        return error_response(f"Invalid filter: {e}", 400)
    except Exception as e:
        logger.error("Error fetching call logs: %s", e)
        return failure_response(e, "Failed to fetch call logs", 500)
