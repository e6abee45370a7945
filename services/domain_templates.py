"""
Per-domain content for intake bots: system prompts, callback function
manifests, and the canned records the callback endpoints answer with.

The records are demo placeholders for what would be lookups into clinical,
legal or visitor systems.
"""

from datetime import date
from typing import Any, Dict, List, Optional

DOMAIN_PROMPTS: Dict[str, str] = {
    "medical": """You are {name}, a professional medical intake assistant. Your role is to:
1. Greet patients warmly and introduce yourself
2. Ask for their patient ID or name to look up their information
3. When a patient provides their ID, immediately call the fetch_patient_details function to retrieve their medical history
4. Help schedule appointments or answer basic questions about their care
5. Be empathetic and professional at all times
6. Never provide medical advice - only administrative assistance

When a patient provides their ID (like 123), immediately call the fetch_patient_details function with their ID to get their medical information and read it back to them.""",

    "legal": """You are {name}, a professional legal intake assistant. Your role is to:
1. Greet clients professionally and introduce yourself
2. Ask for their case ID or name to look up their information
3. When a client provides their case ID, immediately call the fetch_case_details function to retrieve case information
4. Help schedule consultations with attorneys
5. Maintain strict confidentiality
6. Never provide legal advice - only administrative assistance

When a client provides their case ID (like 456), immediately call the fetch_case_details function with their ID to get their case information and read it back to them.""",

    "receptionist": """You are {name}, a professional virtual receptionist. Your role is to:
1. Greet callers warmly and introduce yourself
2. Ask for their name or visitor ID to look up their information
3. When a caller provides their visitor ID, immediately call the fetch_visitor_details function to retrieve their information
4. Help with appointment scheduling and general inquiries
5. Provide office hours and location information
6. Transfer calls when necessary

When a caller provides their visitor ID (like 789), immediately call the fetch_visitor_details function with their ID to get their information and read it back to them.""",
}

# domain -> (function name, description, id label)
DOMAIN_FUNCTIONS: Dict[str, tuple] = {
    "medical": (
        "fetch_patient_details",
        "Fetch detailed patient information including medical history, allergies, and current medications",
        "The patient ID to look up",
    ),
    "legal": (
        "fetch_case_details",
        "Fetch detailed case information including case type, status, and notes",
        "The case ID to look up",
    ),
    "receptionist": (
        "fetch_visitor_details",
        "Fetch visitor information including appointments and status",
        "The visitor ID to look up",
    ),
}

DEFAULT_LOOKUP_IDS = {"medical": "123", "legal": "456", "receptionist": "789"}


def domain_prompt(domain: str, name: str) -> str:
    template = DOMAIN_PROMPTS.get(domain, DOMAIN_PROMPTS["medical"])
    return template.format(name=name)


def domain_functions(domain: str, app_url: str) -> List[Dict[str, Any]]:
    if domain not in DOMAIN_FUNCTIONS:
        return []
    fn_name, description, id_description = DOMAIN_FUNCTIONS[domain]
    return [
        {
            "name": fn_name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": id_description},
                },
                "required": ["id"],
            },
            "url": f"{app_url.rstrip('/')}/api/functions/{fn_name}",
        }
    ]


def pre_call_data(domain: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    meta = metadata or {}
    if domain == "medical":
        return {
            "patientId": meta.get("patientId") or "123",
            "name": meta.get("name") or "John Smith",
            "age": meta.get("age") or 35,
            "lastVisit": meta.get("lastVisit") or date.today().isoformat(),
            "summary": meta.get("summary") or "Regular checkup",
        }
    if domain == "legal":
        return {
            "clientId": meta.get("clientId") or "456",
            "name": meta.get("name") or "Mary Johnson",
            "caseType": meta.get("caseType") or "Contract case",
            "priority": meta.get("priority") or "Medium",
        }
    if domain == "receptionist":
        return {
            "visitorId": meta.get("visitorId") or "789",
            "name": meta.get("name") or "Tom Wilson",
            "appointment": meta.get("appointment") or "Walk-in",
            "purpose": meta.get("purpose") or "Meeting",
        }
    return {}


def fetch_details(record_id: str, domain: str) -> Dict[str, Any]:
    if domain == "medical":
        return {
            "id": record_id,
            "name": "John Smith",
            "allergies": ["None"],
            "medications": ["Aspirin"],
            "notes": "Regular checkup needed",
        }
    if domain == "legal":
        return {
            "id": record_id,
            "name": "Mary Johnson",
            "cases": ["Contract case"],
            "status": "Active",
            "notes": "Meeting scheduled",
        }
    if domain == "receptionist":
        return {
            "id": record_id,
            "name": "Tom Wilson",
            "appointments": ["Today 2 PM"],
            "status": "Confirmed",
            "notes": "First visit",
        }
    return {"id": record_id}


def describe_details(domain: str, details: Dict[str, Any]) -> str:
    """The sentence the bot reads back to the caller after a lookup."""
    if domain == "medical":
        return (
            f"Found patient {details['name']} (ID: {details['id']}). "
            f"Medical history: {', '.join(details.get('allergies') or []) or 'No known allergies'}. "
            f"Current medications: {', '.join(details.get('medications') or []) or 'None'}. "
            f"Notes: {details['notes']}"
        )
    if domain == "legal":
        return (
            f"Found case for {details['name']} (Case ID: {details['id']}). "
            f"Case type: {', '.join(details.get('cases') or []) or 'General legal matter'}. "
            f"Status: {details['status']}. Notes: {details['notes']}"
        )
    if domain == "receptionist":
        return (
            f"Found visitor {details['name']} (Visitor ID: {details['id']}). "
            f"Appointments: {', '.join(details.get('appointments') or []) or 'No scheduled appointments'}. "
            f"Status: {details['status']}. Notes: {details['notes']}"
        )
    return f"Found record {details.get('id')}."
