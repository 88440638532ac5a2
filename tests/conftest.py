"""Shared pytest fixtures for all test suites."""

import asyncio
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from backend.docqa.db.engine import get_async_engine
from backend.docqa.db.models import Base
from backend.docqa.llm.client import DeterministicStubClient, get_llm_client
from backend.docqa.llm.embeddings import HashingEmbeddingClient, get_embedding_client
from backend.docqa.main import app


def _sqlite_engine(path: Path) -> AsyncEngine:
    # File-backed so separate connections see the same data
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool, echo=False)


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine on a fresh SQLite database for async unit tests."""
    engine = _sqlite_engine(tmp_path / "unit.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session bound to the unit test engine."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def embedder() -> HashingEmbeddingClient:
    """Deterministic offline embedder."""
    return HashingEmbeddingClient(dimensions=256)


@pytest.fixture
def test_engine(tmp_path: Path) -> Generator[AsyncEngine, None, None]:
    """Engine for HTTP tests; TestClient runs the app on its own event loop."""
    engine = _sqlite_engine(tmp_path / "api.db")

    async def create_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())

    yield engine

    asyncio.run(engine.dispose())


@pytest.fixture
def client(test_engine: AsyncEngine) -> Generator[TestClient, None, None]:
    """Test client wired to the test database and offline model clients."""
    app.dependency_overrides[get_async_engine] = lambda: test_engine
    app.dependency_overrides[get_embedding_client] = lambda: HashingEmbeddingClient(dimensions=256)
    app.dependency_overrides[get_llm_client] = DeterministicStubClient

    yield TestClient(app)

    app.dependency_overrides.clear()

