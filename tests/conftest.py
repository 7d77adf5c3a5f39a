"""
Test configuration and fixtures for pipeline-designer tests.
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from websockets.exceptions import ConnectionClosed

from pipeline_designer.main import app
from pipeline_designer.config import settings
from pipeline_designer.db.database import get_db
from pipeline_designer.db.models import Base
from pipeline_designer.db.repositories.projects import ProjectRepository
from pipeline_designer.domain.events import DomainEventPublisher, event_publisher
from pipeline_designer.services.element_catalog import load_catalog


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Run simulations without waiting between progress steps."""
    monkeypatch.setattr(settings, "SIMULATION_STEP_DELAY", 0.0)
    monkeypatch.setattr(settings, "SIMULATION_REST_DELAY", 0.0)
    yield settings


@pytest.fixture(autouse=True)
def clean_event_publisher():
    """Drop subscribers registered by a test."""
    yield
    event_publisher.clear_subscribers()


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every session of one test."""
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
    yield session
    session.close()


@pytest.fixture
def repository(db_session):
    return ProjectRepository(db_session)


@pytest.fixture
def client(session_factory):
    """Create test client bound to the in-memory database."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not entered as a context manager, so startup does not touch the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(client):
    """Factory for an httpx.AsyncClient that talks to the app in-process."""
    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver/api",
        )
    return factory


@pytest.fixture
def catalog():
    return load_catalog(settings.ELEMENT_CATALOG_PATH)


@pytest.fixture
def publisher():
    return DomainEventPublisher()


class FakeClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return FakeClock()


class FakeHubTransport:
    """Stands in for a websocket connection to the simulation hub."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self._incoming = asyncio.Queue()

    async def send(self, message):
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(message))

    async def recv(self):
        item = await self._incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True

    def push(self, target, *arguments):
        self._incoming.put_nowait(json.dumps({"target": target, "arguments": list(arguments)}))

    def push_raw(self, raw):
        self._incoming.put_nowait(raw)

    def drop(self):
        self._incoming.put_nowait(ConnectionClosed(None, None))

    def fail(self, error):
        self._incoming.put_nowait(error)


class FakeConnector:
    """Hands out prepared transports (or raises prepared errors) in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        if not self.outcomes:
            raise OSError("hub unreachable")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def settle(rounds: int = 20) -> None:
    """Let background receiver tasks process whatever is queued."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def no_sleep(delay: float) -> None:
    await asyncio.sleep(0)
