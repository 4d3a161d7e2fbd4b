"""
Shared fixtures.

Run:  pytest tests/ -v

Everything runs against an in-memory SQLite database; the workflow engine
is a MockTransport that records what the relay sends it.
"""
import os

# Must be set before webhook_relay.config.settings is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_HEALTH_CHECKS", "false")
os.environ.setdefault("WEBHOOK_BASE_URL", "https://hooks.test")
os.environ.setdefault("N8N_BASE_URL", "http://n8n.test")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from webhook_relay.api.dependencies import (
    create_access_token,
    get_monitoring_service,
    get_webhook_service,
)
from webhook_relay.config.database import get_db
from webhook_relay.models import Base
from webhook_relay.services.monitoring.monitoring_service import MonitoringService
from webhook_relay.services.webhook.webhook_service import WebhookService
from webhook_relay.services.workflow.workflow_engine import StubWorkflowEngine

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
FULL_PAYLOAD = {
    "campaign_name": "X",
    "campaign_id": "1",
    "recording_url": "http://r",
    "caller_id": "+1555",
}


class FakeDownstream:
    """Stands in for the workflow engine's webhook endpoints"""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.json_body = {"received": True}
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def posts(self):
        return [r for r in self.requests if r.method == "POST"]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def downstream():
    return FakeDownstream()


@pytest.fixture
def http_client(downstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(downstream))


@pytest.fixture
def workflow_engine():
    return StubWorkflowEngine("http://n8n.test")


@pytest.fixture
def webhook_service(db_session, http_client, workflow_engine):
    return WebhookService(
        db=db_session,
        http_client=http_client,
        workflow_engine=workflow_engine,
        base_url="https://hooks.test",
        max_consecutive_failures=3,
    )


@pytest.fixture
def monitoring_service(session_factory, http_client):
    return MonitoringService(
        session_factory=session_factory,
        http_client=http_client,
        interval_seconds=0.01,
        enabled=True,
    )


@pytest.fixture
def app(db_session, webhook_service, monitoring_service):
    from webhook_relay.main import create_app

    app = create_app()

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_webhook_service] = lambda: webhook_service
    app.dependency_overrides[get_monitoring_service] = lambda: monitoring_service
    return app


@pytest.fixture
def client(app):
    # No context manager: the lifespan (real database, monitoring loop) stays off
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token({'sub': USER_ID})}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token({'sub': OTHER_USER_ID})}"}


@pytest.fixture
def created_webhook(client, auth_headers):
    response = client.post(
        "/api/webhooks",
        json={
            "workspaceId": "ws-1",
            "name": "Main line",
            "selectedParameters": list(FULL_PAYLOAD),
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]
