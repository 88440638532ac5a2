"""Document store - persisted uploads and their extracted text."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.db.models import Document as DocumentDB
from backend.docqa.db.models import utcnow
from backend.docqa.errors import translate_storage_errors
from backend.docqa.models.documents import Document, DocumentMeta


def to_document_meta(row: DocumentDB) -> DocumentMeta:
    """Map an ORM row to API metadata."""
    return DocumentMeta(id=row.id, filename=row.filename, uploaded_at=row.uploaded_at)


def to_document(row: DocumentDB) -> Document:
    """Map an ORM row to the full domain model."""
    return Document(
        id=row.id,
        filename=row.filename,
        uploaded_at=row.uploaded_at,
        content=row.content,
    )


@translate_storage_errors
async def create_document(session: AsyncSession, *, filename: str, content: str) -> Document:
    """Persist a new document and commit.

    Args:
        session: Database session
        filename: Original upload name
        content: Extracted text

    Returns:
        Created document
    """
    row = DocumentDB(id=uuid.uuid4(), filename=filename, uploaded_at=utcnow(), content=content)
    session.add(row)
    document = to_document(row)
    await session.commit()
    return document


@translate_storage_errors
async def list_documents(session: AsyncSession) -> list[DocumentMeta]:
    """List document metadata, newest upload first."""
    result = await session.execute(
        select(DocumentDB).order_by(DocumentDB.uploaded_at.desc(), DocumentDB.filename)
    )
    return [to_document_meta(row) for row in result.scalars().all()]


@translate_storage_errors
async def get_document(session: AsyncSession, document_id: uuid.UUID) -> Document | None:
    """Fetch a document with its content."""
    row = await session.get(DocumentDB, document_id)
    return to_document(row) if row is not None else None


@translate_storage_errors
async def count_documents(session: AsyncSession) -> int:
    """Number of stored documents."""
    result = await session.execute(select(func.count()).select_from(DocumentDB))
    return int(result.scalar_one())


@translate_storage_errors
async def delete_document(session: AsyncSession, document_id: uuid.UUID) -> DocumentMeta | None:
    """Delete a document row.

    Chunks are removed by the vector store (and by the FK cascade where the
    database enforces it).

    Returns:
        Metadata of the deleted document, or None if it did not exist
    """
    row = await session.get(DocumentDB, document_id)
    if row is None:
        return None

    meta = to_document_meta(row)
    await session.delete(row)
    await session.commit()
    return meta
