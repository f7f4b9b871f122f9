"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory database and a gateway client whose HTTP
transport is an httpx.MockTransport, so the real client code runs without
network access.
"""

import os

# Make sure importing the app module never points at a real database
os.environ["DATABASE_URL"] = "sqlite://"

import httpx
import pytest
from fastapi.testclient import TestClient

from emergency_alerts.config import Settings, get_settings
from emergency_alerts.gateway import GatewayCredentials, SmsGatewayClient
from emergency_alerts.main import create_app
from emergency_alerts.models import AlertRecord
from emergency_alerts.storage import Base, create_db_engine, create_session_factory, init_db

get_settings.cache_clear()

TEST_ACCOUNT_SID = "ACtest0000000000"
TEST_AUTH_TOKEN = "test-auth-token"
TEST_FROM_NUMBER = "+15005550006"


def gateway_success(sid: str = "SM1", status: str = "queued"):
    """Handler returning a Twilio-style accepted message."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"sid": sid, "status": status, "error_code": None})
    return handler


class FakeGateway:
    """MockTransport handler that remembers every request it receives."""

    def __init__(self):
        self.requests = []
        self.handler = gateway_success()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        LOG_LEVEL="WARNING",
        GATEWAY_ACCOUNT_SID=TEST_ACCOUNT_SID,
        GATEWAY_AUTH_TOKEN=TEST_AUTH_TOKEN,
        GATEWAY_FROM_NUMBER=TEST_FROM_NUMBER,
        GATEWAY_BASE_URL="https://gateway.test/2010-04-01",
    )


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def gateway_client(settings, fake_gateway):
    client = SmsGatewayClient(
        GatewayCredentials(settings.GATEWAY_ACCOUNT_SID, settings.GATEWAY_AUTH_TOKEN),
        base_url=settings.GATEWAY_BASE_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        transport=httpx.MockTransport(fake_gateway),
    )
    yield client
    client.close()


@pytest.fixture
def session_factory(settings):
    """Fresh in-memory database with tables created."""
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    yield create_session_factory(engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def stored_records(session_factory):
    """Callable returning all alert records in insertion order."""
    def fetch():
        with session_factory() as db:
            records = db.query(AlertRecord).order_by(AlertRecord.id.asc()).all()
            db.expunge_all()
        return records
    return fetch


@pytest.fixture
def app(settings, gateway_client, session_factory):
    return create_app(settings, gateway=gateway_client, session_factory=session_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
