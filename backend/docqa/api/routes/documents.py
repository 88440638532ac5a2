"""Document endpoints - GET/POST/DELETE /documents."""

import logging
from typing import Annotated

from fastapi import APIRouter, File, Query, UploadFile, status
from pydantic import BaseModel

from backend.docqa.api.common import SuccessResponse, parse_id
from backend.docqa.api.deps import SessionDep, SettingsDep, VectorStoreDep
from backend.docqa.db.documents import list_documents
from backend.docqa.docs.ingest import ingest_document, remove_document
from backend.docqa.docs.parser import is_allowed_file, parse_file
from backend.docqa.errors import UnsupportedFileType, ValidationError
from backend.docqa.models.documents import DocumentMeta

router = APIRouter(prefix="/documents", tags=["documents"])
logger = logging.getLogger(__name__)


class UploadResponse(BaseModel):
    """Response for POST /documents."""

    success: bool = True
    metadata: DocumentMeta


@router.get("", response_model=list[DocumentMeta])
async def get_documents(session: SessionDep) -> list[DocumentMeta]:
    """List uploaded documents, newest first."""
    return await list_documents(session)


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    session: SessionDep,
    vector_store: VectorStoreDep,
    settings: SettingsDep,
    file: Annotated[UploadFile | None, File()] = None,
) -> UploadResponse:
    """Upload a document, extract its text and index it.

    Args:
        session: Database session
        vector_store: Chunk store receiving the embeddings
        settings: Application settings (chunking, size limit)
        file: Multipart upload (.txt, .pdf, .md, .docx)

    Returns:
        Stored document metadata
    """
    if file is None or not file.filename:
        raise ValidationError("No file provided")

    if not is_allowed_file(file.filename):
        raise UnsupportedFileType()

    limit = settings.max_upload_bytes
    if file.size is not None and file.size > limit:
        raise ValidationError(f"File exceeds {limit} bytes")

    # Never buffer more than one byte past the limit
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise ValidationError(f"File exceeds {limit} bytes")

    text = parse_file(file.filename, data)
    metadata = await ingest_document(
        filename=file.filename,
        text=text,
        session=session,
        vector_store=vector_store,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
    )
    logger.info(f"Uploaded {metadata.filename} as {metadata.id}")

    return UploadResponse(metadata=metadata)


@router.delete("", response_model=SuccessResponse)
async def delete_document(
    session: SessionDep,
    vector_store: VectorStoreDep,
    document_id: Annotated[str | None, Query(alias="id")] = None,
) -> SuccessResponse:
    """Delete a document and all of its chunks."""
    await remove_document(parse_id(document_id), session=session, vector_store=vector_store)
    return SuccessResponse()
