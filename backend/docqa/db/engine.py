"""Database engine lifecycle and session dependency."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from backend.docqa.config import Settings, get_settings
from backend.docqa.db.models import Base


def normalize_database_url(database_url: str) -> str:
    """Rewrite sync driver URLs to their async equivalents."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is empty.
    """
    if not settings.database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Please configure the database_url setting."
        )

    return create_async_engine(
        normalize_database_url(settings.database_url), pool_pre_ping=True, echo=False
    )


# Process-wide engine (connection pool), owned by the app lifespan
_async_engine: AsyncEngine | None = None


async def init_engine(settings: Settings) -> AsyncEngine:
    """Create the process-wide engine and optionally the schema."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_async_engine_from_settings(settings)
        if settings.auto_create_schema:
            async with _async_engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
    return _async_engine


async def dispose_engine() -> None:
    """Close all pooled connections."""
    global _async_engine
    if _async_engine is not None:
        await _async_engine.dispose()
        _async_engine = None


def get_async_engine() -> AsyncEngine:
    """FastAPI dependency returning the process-wide engine.

    Falls back to creating it lazily when the lifespan did not run
    (e.g. a TestClient used without a context manager).
    """
    global _async_engine
    if _async_engine is None:
        _async_engine = create_async_engine_from_settings(get_settings())
    return _async_engine


async def get_session(
    engine: Annotated[AsyncEngine, Depends(get_async_engine)],
) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for async database session.

    Yields:
        AsyncSession instance
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session
