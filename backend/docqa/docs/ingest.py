"""Document ingestion - persist uploads and index their chunks."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.db.documents import create_document, delete_document, get_document
from backend.docqa.docs.chunker import chunk_text
from backend.docqa.errors import NotFoundError
from backend.docqa.models.documents import DocumentMeta
from backend.docqa.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


async def ingest_document(
    *,
    filename: str,
    text: str,
    session: AsyncSession,
    vector_store: VectorStore,
    chunk_size: int = 500,
    chunk_overlap: int = 100,
) -> DocumentMeta:
    """Ingest a document: persist it, chunk it and index the chunks.

    The document row is committed before indexing. If embedding fails part
    way, the chunks indexed so far are kept and the error propagates;
    re-uploading the file indexes it again from scratch.

    Args:
        filename: Original upload name
        text: Extracted document text
        session: Async database session
        vector_store: Store receiving the chunks
        chunk_size: Characters per chunk
        chunk_overlap: Characters shared by consecutive chunks

    Returns:
        Metadata of the stored document
    """
    document = await create_document(session, filename=filename, content=text)

    chunks = chunk_text(
        text,
        document_id=document.id,
        filename=document.filename,
        uploaded_at=document.uploaded_at,
        size=chunk_size,
        overlap=chunk_overlap,
    )
    stored = await vector_store.index(chunks)
    logger.info(f"Added {stored} chunks to vector store for {filename}")

    return DocumentMeta(
        id=document.id, filename=document.filename, uploaded_at=document.uploaded_at
    )


async def remove_document(
    document_id: UUID,
    *,
    session: AsyncSession,
    vector_store: VectorStore,
) -> DocumentMeta:
    """Delete a document and all of its chunks.

    Chunks go first so a failure never leaves chunks without their document.

    Raises:
        NotFoundError: If the document does not exist
    """
    if await get_document(session, document_id) is None:
        raise NotFoundError("Document not found")

    await vector_store.delete_by_owner(document_id)
    deleted = await delete_document(session, document_id)
    if deleted is None:
        raise NotFoundError("Document not found")
    return deleted
