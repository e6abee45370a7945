"""
Callback Function Routes

OpenMic invokes these during a live call when the bot runs one of the
functions declared in its manifest (see services/domain_templates.py).

POST /api/functions/fetch_patient_details
POST /api/functions/fetch_case_details
POST /api/functions/fetch_visitor_details

A lookup never fails the call: on any error the canned record for the domain
is returned instead.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_openmic_service
from app.schemas import extract_lookup_id
from services.domain_templates import DEFAULT_LOOKUP_IDS, describe_details
from services.openmic_service import OpenMicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["Functions"])


async def _lookup(request: Request, openmic: OpenMicService, domain: str, kind: str):
    default_id = DEFAULT_LOOKUP_IDS[domain]
    try:
        body = json.loads(await request.body() or b"{}")
        logger.info("fetch_%s_details called with %s", kind, body)
        record_id = extract_lookup_id(body, kind, default_id)
        details = openmic.generate_fetch_details(record_id, domain)
    except Exception as e:
        logger.error("Error in fetch_%s_details: %s", kind, e)
        details = openmic.generate_fetch_details(default_id, domain)

    result = describe_details(domain, details)
    logger.info("fetch_%s_details -> %s", kind, result)
    return {"success": True, "result": result, "data": details}


@router.post("/fetch_patient_details", summary="Patient lookup for medical bots")
async def fetch_patient_details(request: Request, openmic: OpenMicService = Depends(get_openmic_service)):
    return await _lookup(request, openmic, "medical", "patient")


@router.post("/fetch_case_details", summary="Case lookup for legal bots")
async def fetch_case_details(request: Request, openmic: OpenMicService = Depends(get_openmic_service)):
    return await _lookup(request, openmic, "legal", "case")


@router.post("/fetch_visitor_details", summary="Visitor lookup for receptionist bots")
async def fetch_visitor_details(request: Request, openmic: OpenMicService = Depends(get_openmic_service)):
    return await _lookup(request, openmic, "receptionist", "visitor")
