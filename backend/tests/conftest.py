"""
NoteCraft Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment is pointed at SQLite and test secrets BEFORE any
       notecraft import, so the settings singleton never sees production
       values.

Fixture Hierarchy:
    mock_db_session: AsyncMock session for service unit tests
    fake_llm / fake_grammar: stand-ins for the upstream providers
    db_engine: fresh in-memory SQLite schema per test (aiosqlite)
    test_app: create_app() wired to the fakes and to db_engine
    test_client: httpx AsyncClient over ASGITransport
    make_auth_headers: bearer headers for an arbitrary user id
"""

import os
import uuid
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["JWT_SECRET"] = "test-secret-for-notecraft-suite"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from notecraft.database import Base, get_db_session
from notecraft.middleware.rate_limit import InMemoryRateLimitStore, SlidingWindowLimiter
from notecraft.services.auth_service import auth_service
from notecraft.services.corrections import Issue
from notecraft.services.llm_base import LLMService

import notecraft.models  # noqa: F401


class FakeLLM(LLMService):
    """Records every call; answers with canned text."""

    def __init__(self, summary: str = "A short summary.", transformed: str = "Rewritten text."):
        self.summary = summary
        self.transformed = transformed
        self.calls: List[tuple] = []

    async def summarize(self, text: str) -> str:
        self.calls.append(("summarize", text))
        return self.summary

    async def transform_style(self, text: str, style: str) -> str:
        self.calls.append(("transform_style", text, style))
        return self.transformed

    async def health_check(self) -> bool:
        return True


class FakeGrammar:
    """GrammarService stand-in returning preset issues."""

    def __init__(self, issues: Optional[List[Issue]] = None):
        self.issues = issues or []
        self.checked: List[str] = []

    async def check(self, text: str) -> List[Issue]:
        self.checked.append(text)
        return list(self.issues)

    async def aclose(self) -> None:
        return None


@pytest.fixture
def mock_db_session():
    """
    Mock AsyncSession for service tests.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = note
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.execute.return_value = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_grammar():
    return FakeGrammar()


@pytest.fixture
def make_auth_headers():
    def _make(user_id: Optional[uuid.UUID] = None) -> Dict[str, str]:
        token = auth_service.create_access_token(user_id or uuid.uuid4())
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest_asyncio.fixture
async def db_engine():
    """One in-memory database per test; StaticPool keeps it on one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_app(db_engine, fake_llm, fake_grammar):
    from notecraft.main import create_app

    app = create_app(
        llm_service=fake_llm,
        grammar_service=fake_grammar,
        login_limiter=SlidingWindowLimiter(InMemoryRateLimitStore(), limit=3, window=900),
        request_limiter=SlidingWindowLimiter(InMemoryRateLimitStore(), limit=10000, window=3600),
    )
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
