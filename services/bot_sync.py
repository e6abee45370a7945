"""
Pull OpenMic bots into the local store.

OpenMic's bot objects do not have a stable shape, so the id, name and domain
are guessed from a prioritized list of fields. Records are processed one at a
time; a failure on one record is recorded and the loop moves on.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from app.database import Database
from app.models import BotDomain
from services.openmic_service import first_present

logger = logging.getLogger(__name__)

PLATFORM_NAME = "OpenMic"

UID_FIELDS = ("id", "uid", "agent_id", "botId", "agentId", "_id")
NAME_FIELDS = ("name", "title", "agent_name", "displayName")
PROMPT_FIELDS = ("prompt", "system_prompt", "instructions")

# Checked in this order; the first set with a substring hit wins.
DOMAIN_KEYWORDS = (
    (BotDomain.legal, ("legal", "lawyer", "attorney", "law")),
    (BotDomain.receptionist, ("reception", "receptionist", "front desk", "secretary")),
    (BotDomain.medical, ("medical", "doctor", "patient", "health", "clinic", "hospital")),
)


@dataclass
class SyncReport:
    total_fetched: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFetched": self.total_fetched,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors or None,
            "message": (
                f"Successfully synced bots from {PLATFORM_NAME}: "
                f"{self.created} created, {self.updated} updated"
            ),
        }


def extract_uid(remote: Dict[str, Any]) -> Optional[str]:
    return first_present(remote, UID_FIELDS)


def extract_name(remote: Dict[str, Any], uid: str) -> str:
    return first_present(remote, NAME_FIELDS) or f"{PLATFORM_NAME} Bot {uid}"


def classify_domain(name: str, prompt: Optional[str] = None) -> str:
    text = f"{name} {prompt or ''}".lower()
    for domain, keywords in DOMAIN_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return domain.value
    return BotDomain.medical.value


def sync_remote_bots(database: Database, remote_bots: Iterable[Any]) -> SyncReport:
    report = SyncReport()
    for remote in remote_bots:
        report.total_fetched += 1
        if not isinstance(remote, dict):
            logger.warning("Skipping non-object bot record: %r", remote)
            report.skipped += 1
            continue

        uid = extract_uid(remote)
        if not uid:
            logger.info("Skipping bot with no uid. Available fields: %s", list(remote.keys()))
            report.skipped += 1
            continue

        try:
            name = extract_name(remote, uid)
            domain = classify_domain(name, first_present(remote, PROMPT_FIELDS))
            bot, created = database.upsert_bot(uid=uid, name=name, domain=domain)
            if created:
                report.created += 1
                logger.info("Created bot from %s: %s (%s) domain=%s", PLATFORM_NAME, name, uid, domain)
            else:
                report.updated += 1
                logger.info("Updated bot from %s: %s (%s) domain=%s", PLATFORM_NAME, name, uid, domain)
        except Exception as e:
            message = f"Error processing bot {uid}: {e}"
            logger.error("%s", message)
            report.errors.append(message)

    logger.info(
        "Sync complete: %d created, %d updated, %d skipped, %d errors",
        report.created, report.updated, report.skipped, len(report.errors),
    )
    return report
