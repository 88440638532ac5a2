"""Document and chunk domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class DocumentMeta(BaseModel):
    """Document metadata as returned by the API (no content)."""

    id: UUID
    filename: str
    uploaded_at: datetime = Field(..., serialization_alias="uploadedAt")


class Document(DocumentMeta):
    """Document with its extracted text."""

    content: str


class ChunkMetadata(BaseModel):
    """Metadata stored alongside every chunk."""

    filename: str
    uploaded_at: datetime
    document_id: UUID


class Chunk(BaseModel):
    """Text segment of a document, not yet embedded."""

    document_id: UUID
    order: int = Field(..., ge=0)
    text: str
    metadata: ChunkMetadata


class RetrievedChunk(BaseModel):
    """Chunk returned by similarity search."""

    text: str
    metadata: ChunkMetadata
    score: float
