"""
Shared fixtures: in-memory SQLite, a scriptable LLM provider and a stub PDF
extractor wired in through app.dependency_overrides.
"""
import os

os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("OPENAI_API_KEY", None)

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from echoprep.main import app
from echoprep.db.base import Base
from echoprep.db.session import get_db
from echoprep.core.rate_limit import rate_limit_store
from echoprep.llm.provider import LLMProvider, LLMProviderError, LLMResponse
from echoprep.services.ai_service import AIService, get_ai_service
from echoprep.services.resume_parser import ResumeParseError, get_text_extractor
import echoprep.db.models  # noqa: F401

API = "/api/v1"

TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

GOOD_JUDGEMENT = {
    "overallScore": 78,
    "technicalScore": 74,
    "communicationScore": 82,
    "summary": "Good SQL fundamentals.",
    "strengths": ["Clear answers"],
    "improvements": ["Go deeper on indexing"],
    "actions": ["Practice query plans"],
}

GOOD_ATS = {
    "score": 81,
    "status": "Good",
    "message": "Well structured resume.",
    "issues": ["Add metrics", "Add a skills header", "Use action verbs", "Trim summary", "Link GitHub"],
}


class StubProvider(LLMProvider):
    """Deterministic provider. Set reply/judgement text, flip fail, or hook on_chat."""

    def __init__(self):
        self.reply = "Great. How would you index a slow query?"
        self.judgement = json.dumps(GOOD_JUDGEMENT)
        self.fail = False
        self.on_chat = None
        self.calls = []

    def chat(self, messages, model, temperature=0.7, max_tokens=None, json_mode=False):
        self.calls.append({"messages": messages, "model": model, "json_mode": json_mode})
        if self.on_chat:
            self.on_chat()
        if self.fail:
            raise LLMProviderError("stub provider is down")
        content = self.judgement if json_mode else self.reply
        return LLMResponse(content=content, tokens_in=10, tokens_out=20, model=model)


class StubExtractor:
    """Treats bytes starting with %PDF as a PDF whose text is the remainder."""

    def __init__(self):
        self.calls = 0

    def extract_text(self, data: bytes) -> str:
        self.calls += 1
        if not data.startswith(b"%PDF"):
            raise ResumeParseError("Failed to parse PDF")
        return data[4:].decode("utf-8", errors="ignore")


def override_get_db():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_db():
    """Fresh tables and rate limits for each test."""
    Base.metadata.create_all(bind=test_engine)
    rate_limit_store.clear()
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store_outage():
    """Every statement on the test engine fails while outage.down is True."""
    outage = SimpleNamespace(down=False)

    def fail_when_down(conn, cursor, statement, parameters, context, executemany):
        if outage.down:
            raise RuntimeError("database unavailable")

    event.listen(test_engine, "before_cursor_execute", fail_when_down)
    yield outage
    outage.down = False
    event.remove(test_engine, "before_cursor_execute", fail_when_down)


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def ai_service(provider):
    return AIService(provider=provider)


@pytest.fixture
def extractor():
    return StubExtractor()


@pytest.fixture
def client(ai_service, extractor):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_text_extractor] = lambda: extractor
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username="alice", email=None, password="testpass123"):
    """Register a user and return (body data, bearer headers). Clears the client's cookies."""
    response = client.post(f"{API}/users/register", json={
        "username": username,
        "email": email or f"{username}@example.com",
        "password": password,
    })
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    client.cookies.clear()
    return data, {"Authorization": f"Bearer {data['accessToken']}"}


@pytest.fixture
def alice(client):
    return register(client, "alice")


@pytest.fixture
def bob(client):
    return register(client, "bob")
