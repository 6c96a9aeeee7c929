import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import List, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base  # noqa: E402
from app.services import config_cache, orchestrator_service, sms_service  # noqa: E402
from app.services.config_cache import ConfigCache  # noqa: E402
from app.services.llm import LLMProvider, LLMResponse  # noqa: E402
from app.services.sms_service import SmsSender  # noqa: E402


class FakeLLMProvider(LLMProvider):
    """Returns canned content, or raises when `error` is set."""

    def __init__(self, content: str = "{}", error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls: List[dict] = []

    def generate(self, messages, model=None, temperature=0.3, max_tokens=800, timeout_seconds=None, response_format=None):
        self.calls.append(
            {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_format": response_format,
            }
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, model="fake-model")


class RecordingSmsSender(SmsSender):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[tuple] = []

    def send(self, to: str, text: str) -> None:
        if self.fail:
            raise RuntimeError("provider unavailable")
        self.sent.append((to, text))


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
def db(session_factory):
    """Real session on an in-memory SQLite database."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fresh_config_cache(monkeypatch):
    cache = ConfigCache()
    monkeypatch.setattr(config_cache, "_config_cache", cache)
    return cache


@pytest.fixture
def fake_llm(monkeypatch):
    provider = FakeLLMProvider()
    monkeypatch.setattr(orchestrator_service, "_llm_provider", provider)
    return provider


@pytest.fixture
def sms_sender(monkeypatch):
    sender = RecordingSmsSender()
    monkeypatch.setattr(sms_service, "_sms_sender", sender)
    return sender


@pytest.fixture
def make_llm():
    """Factory for providers that return canned content or raise."""
    return FakeLLMProvider


@pytest.fixture
def client(session_factory, fresh_config_cache, fake_llm, sms_sender):
    """TestClient whose requests use the in-memory database."""
    from fastapi.testclient import TestClient

    from app.database import get_db
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
