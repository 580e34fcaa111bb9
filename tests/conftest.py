"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# Tests run in dev mode (userId in the request is trusted) regardless of local .env
os.environ["DEV_MODE"] = "true"

import asyncio  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from models.base import Base  # noqa: E402
from schemas.enrichment import ContentKind, Enrichment  # noqa: E402


class FakeAnalyzer:
    """
    Stand-in for ContentAnalyzer.

    Returns `result` when set; otherwise derives a title from the content so
    different inputs produce different items. Raises `error` when set.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ContentKind]] = []
        self.result: Enrichment | None = None
        self.error: Exception | None = None

    async def analyze(self, content: Any, kind: ContentKind) -> Enrichment:
        self.calls.append((content, kind))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        title = content.get("title") if isinstance(content, dict) else None
        return Enrichment(
            title=(title or "Saved image")[:80],
            summary=f"Summary of {kind} content",
            category="Ideas",
            tags=[str(kind)],
        )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with the schema created; one per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Async session bound to the test engine; discarded with the database."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    """Fake AI analyzer injected into the ingestion endpoint."""
    return FakeAnalyzer()


@pytest.fixture
async def client(
    db_session: AsyncSession,
    analyzer: FakeAnalyzer,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and analyzer overrides."""
    # Clear the settings cache so it picks up DATABASE_URL from environment
    from core.config import get_settings

    get_settings.cache_clear()

    from api.dependencies import get_content_analyzer
    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_content_analyzer] = lambda: analyzer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
