import httpx
import pytest

from fastapi.testclient import TestClient

from app.config import Settings
from app.database import Database
from app.main import create_app
from services.openmic_service import OpenMicService

API_KEY = "om_test_key"


def not_found(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, json={"error": "not found"})


class Recorder:
    """Wraps a handler and keeps every request it saw."""

    def __init__(self, handler=not_found):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def paths(self):
        return [(r.method, r.url.path) for r in self.requests]


def make_openmic(handler=not_found, api_key=API_KEY) -> OpenMicService:
    return OpenMicService(
        api_key=api_key,
        base_url="https://openmic.test/v1",
        app_url="https://dashboard.test",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path}/app.db"


@pytest.fixture
def database(database_url):
    db = Database(database_url)
    db.create_schema()
    return db


@pytest.fixture
def make_client(database_url):
    """
    Build a TestClient against a fresh sqlite file.

    ``handler`` answers every OpenMic request; ``api_key=""`` simulates an
    unconfigured platform.
    """
    def _make(handler=not_found, api_key=API_KEY, verify_webhooks=False):
        settings = Settings(
            database_url=database_url,
            openmic_api_key=api_key,
            app_url="https://dashboard.test",
            verify_webhook_signatures=verify_webhooks,
        )
        app = create_app(settings, openmic=make_openmic(handler, api_key))
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def offline_client(make_client):
    return make_client(api_key="")
