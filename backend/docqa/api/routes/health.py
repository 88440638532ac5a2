"""Health check endpoint.

Reports each dependency as ``OK`` or ``Error``:
- backend: the process is serving requests
- db: database connectivity (``SELECT 1``)
- storage: the documents table is readable
- llm: a real embedding call against the configured model service
"""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.docqa.api.deps import EmbedderDep
from backend.docqa.db.engine import get_async_engine
from backend.docqa.db.models import Document
from backend.docqa.llm.embeddings import EmbeddingClient

router = APIRouter()
logger = logging.getLogger(__name__)

Status = Literal["OK", "Error"]


class HealthResponse(BaseModel):
    """Response for GET /health."""

    backend: Status
    storage: Status
    db: Status
    llm: Status


async def check_db(engine: AsyncEngine) -> Status:
    """Check database connectivity."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "OK"
    except Exception as e:
        logger.error(f"Database health check failed: {type(e).__name__}")
        return "Error"


async def check_storage(engine: AsyncEngine) -> Status:
    """Check that the document store can be read."""
    try:
        async with engine.connect() as conn:
            await conn.execute(select(func.count()).select_from(Document))
        return "OK"
    except Exception as e:
        logger.error(f"Storage health check failed: {type(e).__name__}")
        return "Error"


async def check_llm(embedder: EmbeddingClient) -> Status:
    """Check model service reachability with a real embedding call."""
    try:
        await embedder.embed("test")
        return "OK"
    except Exception as e:
        logger.error(f"LLM health check failed: {type(e).__name__}")
        return "Error"


@router.get("/health", response_model=HealthResponse)
async def health(
    engine: Annotated[AsyncEngine, Depends(get_async_engine)],
    embedder: EmbedderDep,
) -> HealthResponse:
    """Diagnostic health check.

    Always 200 while the process serves requests; failing dependencies are
    reported in the body.
    """
    return HealthResponse(
        backend="OK",
        storage=await check_storage(engine),
        db=await check_db(engine),
        llm=await check_llm(embedder),
    )
