"""Question answering endpoint - POST /ask streamed as Server-Sent Events."""

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.docqa.api.deps import SessionDep, SettingsDep, VectorStoreDep
from backend.docqa.db.engine import get_async_engine
from backend.docqa.llm.client import LLMClient, get_llm_client
from backend.docqa.models.events import encode_sse
from backend.docqa.rag.orchestrator import AnswerOrchestrator

router = APIRouter(tags=["ask"])


class AskRequest(BaseModel):
    """Request body for POST /ask."""

    model_config = ConfigDict(populate_by_name=True)

    question: str | None = Field(None, description="Natural-language question")
    conversation_id: uuid.UUID | None = Field(
        None, alias="conversationId", description="Existing conversation to continue"
    )


@router.post("/ask")
async def ask(
    body: AskRequest,
    request: Request,
    engine: Annotated[AsyncEngine, Depends(get_async_engine)],
    session: SessionDep,
    vector_store: VectorStoreDep,
    llm: Annotated[LLMClient, Depends(get_llm_client)],
    settings: SettingsDep,
) -> StreamingResponse:
    """Answer a question from the uploaded documents.

    Validation, retrieval and recording the user turn happen before the
    stream opens, so those failures come back as JSON ``{error}`` bodies.

    Args:
        body: Question and optional conversation id
        request: Used to detect client disconnects
        engine: Engine for the streaming body's own session
        session: Database session
        vector_store: Chunk store for retrieval
        llm: Generation client
        settings: Application settings

    Returns:
        SSE stream of ``data: {type, content}`` frames
    """
    orchestrator = AnswerOrchestrator(
        session=session,
        vector_store=vector_store,
        llm=llm,
        k=settings.retrieval_k,
        history_limit=settings.history_limit,
        deadline_seconds=settings.answer_deadline_seconds,
    )
    prepared = await orchestrator.prepare(body.question or "", body.conversation_id)

    async def event_generator() -> AsyncGenerator[str, None]:
        """Generate SSE frames."""
        # The request session may be closed before the body is sent
        async with AsyncSession(engine, expire_on_commit=False) as stream_session:
            async for event in orchestrator.stream(
                prepared,
                session=stream_session,
                is_disconnected=request.is_disconnected,
            ):
                yield encode_sse(event)

    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",  # Disable nginx buffering
    }
    if prepared.conversation_id is not None:
        headers["X-Conversation-Id"] = str(prepared.conversation_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=headers,
    )
