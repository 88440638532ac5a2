"""Shared FastAPI dependencies wiring stores and model clients per request."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.config import Settings, get_settings
from backend.docqa.db.engine import get_session
from backend.docqa.llm.embeddings import EmbeddingClient, get_embedding_client
from backend.docqa.rag.vector_store import VectorStore

SessionDep = Annotated[AsyncSession, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
EmbedderDep = Annotated[EmbeddingClient, Depends(get_embedding_client)]


def get_vector_store(
    session: SessionDep,
    embedder: EmbedderDep,
    settings: SettingsDep,
) -> VectorStore:
    """Vector store bound to the request session."""
    return VectorStore(session, embedder, k=settings.retrieval_k)


VectorStoreDep = Annotated[VectorStore, Depends(get_vector_store)]
