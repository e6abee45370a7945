"""
Seed demo bots and sample call logs.

    python -m app.seed

Bots are upserted by uid, so re-running is safe; sample logs are only added
to a demo bot that has none yet.
"""

import logging
from typing import Any, Dict, List

from app.config import load_settings
from app.database import Database
from app.schemas import CallMetadata

logger = logging.getLogger(__name__)

DEMO_BOTS: List[Dict[str, Any]] = [
    {
        "uid": "medical_bot_demo",
        "name": "Medical Intake Assistant",
        "domain": "medical",
        "transcript": (
            "Bot: Hello, I'm your medical intake assistant. How can I help you today?\n"
            "Caller: Hi, I need to schedule an appointment for my diabetes follow-up.\n"
            "Bot: I'd be happy to help you schedule that appointment. Can you please provide me with your patient ID?\n"
            "Caller: Yes, it's 123.\n"
            "Bot: Thank you. I see you're John Smith. I have availability next Tuesday at 2 PM or Thursday at 10 AM.\n"
            "Caller: Tuesday at 2 PM works great.\n"
            "Bot: Excellent! I've scheduled your appointment for Tuesday at 2 PM."
        ),
        "metadata": {
            "callId": "call_001",
            "duration": 180,
            "patientId": "123",
            "appointmentScheduled": True,
            "appointmentDate": "2025-09-23T14:00:00Z",
        },
    },
    {
        "uid": "legal_bot_demo",
        "name": "Legal Consultation Bot",
        "domain": "legal",
        "transcript": (
            "Bot: Good afternoon, this is your legal consultation assistant. How may I assist you today?\n"
            "Caller: I was in a car accident last week and need to know about my legal options.\n"
            "Bot: I'm sorry to hear about your accident. Can you tell me the date of the accident?\n"
            "Caller: It was September 10th, around 3 PM.\n"
            "Bot: I'm going to connect you with Attorney Jane Doe who specializes in personal injury cases.\n"
            "Caller: That sounds perfect.\n"
            "Bot: I've scheduled your consultation with Attorney Jane Doe for tomorrow at 10 AM."
        ),
        "metadata": {
            "callId": "call_002",
            "caseType": "Personal Injury",
            "accidentDate": "2025-09-10",
            "policeReportFiled": True,
            "consultationScheduled": True,
            "attorney": "Jane Doe",
        },
    },
    {
        "uid": "receptionist_bot_demo",
        "name": "Virtual Receptionist",
        "domain": "receptionist",
        "transcript": (
            "Bot: Thank you for calling our office. This is your virtual receptionist. How can I help you today?\n"
            "Caller: I'd like to schedule an appointment for a consultation.\n"
            "Bot: May I have your name please?\n"
            "Caller: Michael Brown.\n"
            "Bot: I have availability this Friday at 10 AM or next Monday at 9 AM. Which would you prefer?\n"
            "Caller: Friday at 10 AM sounds great.\n"
            "Bot: Excellent! I've scheduled your consultation for Friday at 10 AM."
        ),
        "metadata": {
            "callId": "call_003",
            "clientName": "Michael Brown",
            "appointmentType": "First-time consultation",
            "appointmentDate": "2025-09-20T10:00:00Z",
            "firstTimeClient": True,
        },
    },
]


def seed_demo_data(database: Database) -> Dict[str, int]:
    bots = 0
    logs = 0
    for demo in DEMO_BOTS:
        bot, _ = database.upsert_bot(uid=demo["uid"], name=demo["name"], domain=demo["domain"])
        bots += 1
        if database.count_bot_call_logs(bot.id) == 0:
            database.create_call_log(
                bot_id=bot.id,
                transcript=demo["transcript"],
                metadata=CallMetadata.model_validate(demo["metadata"]).to_json(),
            )
            logs += 1
    logger.info("Seeded %d demo bots and %d call logs", bots, logs)
    return {"bots": bots, "callLogs": logs}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    database = Database(load_settings().database_url)
    database.create_schema()
    seed_demo_data(database)


if __name__ == "__main__":
    main()
