from __future__ import annotations

import os
import uuid

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RELAY_SUBMISSIONS"] = "true"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.dependencies import get_relay
from app.models import AdminUser
from app.services.relay import NotificationRelay
from app.services.sinks import CrmWebhookSink, MetaConversionsSink
from app.utils.auth import create_access_token, get_password_hash
from main import app

ADMIN_EMAIL = "admin@newrayan.com"
ADMIN_PASSWORD = "NewRayan2024!"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class SinkRecorder:
    """Mock transport: records outbound requests, answers 200 unless told otherwise."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail_hosts: set[str] = set()
        self.unreachable = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("unreachable", request=request)
        if request.url.host in self.fail_hosts:
            return httpx.Response(400, json={"error": {"message": "Invalid parameter"}})
        return httpx.Response(200, json={"events_received": 1})

    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]


@pytest.fixture
def recorder():
    return SinkRecorder()


@pytest.fixture
def relay(recorder):
    sinks = [
        MetaConversionsSink("1109395797414068", "meta-token"),
        CrmWebhookSink("https://crm.example.test/hooks/lead"),
    ]
    return NotificationRelay(sinks, timeout=2.0, transport=httpx.MockTransport(recorder))


@pytest.fixture
def client(session_factory, relay):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_relay] = lambda: relay
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    user = AdminUser(
        id=str(uuid.uuid4()),
        email=ADMIN_EMAIL,
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        name="مدير النظام",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(admin):
    token = create_access_token({"sub": admin.email})
    return {"Authorization": f"Bearer {token}"}
