"""ORM rows -> JSON dicts in the dashboard's camelCase shape."""

from datetime import datetime
from typing import Any, Dict, Optional

from app.models import Bot, CallLog


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_bot(bot: Bot, call_log_count: Optional[int] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": bot.id,
        "uid": bot.uid,
        "name": bot.name,
        "domain": bot.domain,
        "createdAt": _iso(bot.created_at),
        "updatedAt": _iso(bot.updated_at),
    }
    if call_log_count is not None:
        data["callLogCount"] = call_log_count
    return data


def serialize_call_log(log: CallLog) -> Dict[str, Any]:
    bot = log.bot
    return {
        "id": log.id,
        "botId": log.bot_id,
        "bot": {
            "id": bot.id if bot else log.bot_id,
            "name": bot.name if bot else "Unknown Bot",
            "domain": bot.domain if bot else "unknown",
        },
        "transcript": log.transcript,
        "metadata": log.call_metadata or {},
        "createdAt": _iso(log.created_at),
        "source": "local",
    }
