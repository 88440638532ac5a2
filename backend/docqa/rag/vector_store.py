"""Vector store - chunk embeddings persisted in the document_chunks table.

Similarity search is an exact cosine scan: stored vectors are stacked into a
numpy matrix, L2-normalised and scored with one matrix-vector product, so
SQLite and PostgreSQL rank identically.
"""

import logging
import uuid
from collections.abc import Iterable

import numpy as np
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.db.models import DocumentChunk as DocumentChunkDB
from backend.docqa.errors import StorageError, translate_storage_errors
from backend.docqa.llm.embeddings import EmbeddingClient
from backend.docqa.models.documents import Chunk, ChunkMetadata, RetrievedChunk
from backend.docqa.utils.metrics import metrics

logger = logging.getLogger(__name__)


def _as_matrix(vectors: list[float] | list[list[float]]) -> np.ndarray:
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    return matrix


def _normalize(matrix: np.ndarray) -> np.ndarray:
    # Zero rows stay zero and score 0.0
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    return matrix / np.clip(norms, 1e-10, None)


def cosine_scores(query: list[float], vectors: list[list[float]]) -> np.ndarray:
    """Cosine similarity of the query against every row of ``vectors``."""
    return _normalize(_as_matrix(vectors)) @ _normalize(_as_matrix(query))[0]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 when either vector is all zeros."""
    return float(cosine_scores(a, [b])[0])


class VectorStore:
    """Embeds, stores and searches document chunks."""

    def __init__(self, session: AsyncSession, embedder: EmbeddingClient, *, k: int = 3) -> None:
        self._session = session
        self._embedder = embedder
        self._k = k

    async def index(self, chunks: Iterable[Chunk]) -> int:
        """Embed and persist chunks.

        Each chunk is independent: chunks embedded before a failure stay
        committed and the failure is re-raised.

        Returns:
            Number of chunks stored
        """
        stored = 0
        try:
            for chunk in chunks:
                vector = await self._embedder.embed(chunk.text)
                self._session.add(
                    DocumentChunkDB(
                        id=uuid.uuid4(),
                        document_id=chunk.document_id,
                        order=chunk.order,
                        content=chunk.text,
                        embedding=vector,
                        metadata_=chunk.metadata.model_dump(mode="json"),
                    )
                )
                stored += 1
        except Exception:
            # The embedding failure is what the caller sees
            try:
                await self._commit()
            except StorageError:
                logger.exception(f"Failed to keep {stored} chunks indexed before the error")
                stored = 0
            metrics.inc_chunks_indexed(stored)
            raise

        await self._commit()
        metrics.inc_chunks_indexed(stored)
        logger.info(f"Indexed {stored} chunks")
        return stored

    @translate_storage_errors
    async def _commit(self) -> None:
        await self._session.commit()

    @translate_storage_errors
    async def count(self) -> int:
        """Number of stored chunks."""
        result = await self._session.execute(select(func.count()).select_from(DocumentChunkDB))
        return int(result.scalar_one())

    async def search(self, query_text: str, k: int | None = None) -> list[RetrievedChunk]:
        """Return up to k chunks by decreasing similarity to the query.

        An empty store yields an empty list without calling the embedder.
        """
        limit = self._k if k is None else k
        if limit <= 0 or await self.count() == 0:
            return []

        query_vector = await self._embedder.embed(query_text)
        rows = await self._load_rows()
        if not rows:
            return []

        scores = cosine_scores(query_vector, [row.embedding for row in rows])
        # Deterministic tie-break: older documents first, then chunk order
        _, upload_rank = np.unique(
            [row.metadata_.get("uploaded_at", "") for row in rows], return_inverse=True
        )
        orders = np.asarray([row.order for row in rows])
        ranking = np.lexsort((orders, upload_rank, -scores))

        return [
            RetrievedChunk(
                text=rows[i].content,
                metadata=ChunkMetadata.model_validate(rows[i].metadata_),
                score=float(scores[i]),
            )
            for i in ranking[:limit]
        ]

    @translate_storage_errors
    async def _load_rows(self) -> list[DocumentChunkDB]:
        result = await self._session.execute(select(DocumentChunkDB))
        return list(result.scalars().all())

    @translate_storage_errors
    async def delete_by_owner(self, document_id: uuid.UUID) -> int:
        """Remove every chunk of a document; no-op when none match.

        Returns:
            Number of chunks removed
        """
        result = await self._session.execute(
            delete(DocumentChunkDB).where(DocumentChunkDB.document_id == document_id)
        )
        await self._session.commit()
        removed = result.rowcount or 0
        logger.info(f"Deleted {removed} chunks for document {document_id}")
        return removed
