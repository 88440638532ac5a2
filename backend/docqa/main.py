"""FastAPI application - document Q&A service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.docqa.api.routes.ask import router as ask_router
from backend.docqa.api.routes.chats import router as chats_router
from backend.docqa.api.routes.documents import router as documents_router
from backend.docqa.api.routes.health import router as health_router
from backend.docqa.api.routes.metrics import router as metrics_router
from backend.docqa.config import get_settings
from backend.docqa.db.engine import dispose_engine, init_engine
from backend.docqa.errors import DocQAError
from backend.docqa.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the process-wide connection pool."""
    settings = get_settings()
    configure_logging(settings.log_level)
    await init_engine(settings)
    logger.info("Database engine initialised")
    try:
        yield
    finally:
        await dispose_engine()


app = FastAPI(title="Document Q&A API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().ui_origin],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Conversation-Id"],
)


@app.exception_handler(DocQAError)
async def docqa_error_handler(request: Request, exc: DocQAError) -> JSONResponse:
    """Render service errors as ``{"error": message}``."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}", exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed request bodies as 400 ``{"error": ...}``."""
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})


# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(documents_router, tags=["documents"])
app.include_router(chats_router, tags=["chats"])
app.include_router(ask_router, tags=["ask"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Document Q&A API", "version": "0.1.0"}
