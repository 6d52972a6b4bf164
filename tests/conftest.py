import os

# Must be set before the app modules are imported
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.deps import get_db
from app.db.init_db import init_db
from app.services import enhancer, model_preferences


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture
def SessionTesting(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(SessionTesting):
    session = SessionTesting()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client(SessionTesting):
    """Factory for independent clients (separate cookie jars) on one database."""

    def override_get_db():
        session = SessionTesting()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    clients = []

    def _make(**kwargs):
        c = TestClient(app, **kwargs)
        clients.append(c)
        return c

    yield _make

    for c in clients:
        c.close()
    app.dependency_overrides.clear()
    model_preferences.reset()


@pytest.fixture
def client(make_client):
    return make_client()


def register(client, email="alice@example.com", password="secret123", name="Alice"):
    body = {"email": email, "password": password}
    if name is not None:
        body["name"] = name
    return client.post("/api/auth/register", json=body)


@pytest.fixture
def signup():
    return register


@pytest.fixture
def auth_client(client):
    resp = register(client)
    assert resp.status_code == 201
    return client


class FakeOpenAI:
    """Stands in for ``openai.OpenAI`` and records what it was sent."""

    def __init__(self, recorder, api_key=None, timeout=None):
        self.recorder = recorder
        recorder.api_keys.append(api_key)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._complete))
        self.audio = SimpleNamespace(transcriptions=SimpleNamespace(create=self._transcribe))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.recorder.closed += 1

    def _complete(self, **kwargs):
        self.recorder.completions.append(kwargs)
        if self.recorder.error:
            raise self.recorder.error
        if self.recorder.no_choices:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.recorder.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def _transcribe(self, **kwargs):
        self.recorder.transcriptions.append(kwargs)
        return SimpleNamespace(text=self.recorder.transcript)


class FakeDownload:
    def __init__(self, content):
        self.content = content

    def raise_for_status(self):
        pass


@pytest.fixture
def fake_openai(monkeypatch):
    recorder = SimpleNamespace(
        api_keys=[],
        completions=[],
        transcriptions=[],
        downloads=[],
        reply="Enhanced prompt text",
        transcript="build me a weather dashboard",
        error=None,
        no_choices=False,
        closed=0,
    )

    def fake_get(url, **kwargs):
        recorder.downloads.append(url)
        return FakeDownload(b"voice-bytes")

    monkeypatch.setattr(enhancer, "OpenAI", lambda **kw: FakeOpenAI(recorder, **kw))
    monkeypatch.setattr(enhancer.httpx, "get", fake_get)
    return recorder
