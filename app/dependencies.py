"""FastAPI dependencies resolving the per-process collaborators built in create_app."""

from fastapi import Request

from app.config import Settings
from app.database import Database
from services.openmic_service import OpenMicService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_openmic_service(request: Request) -> OpenMicService:
    return request.app.state.openmic
