"""Unit tests for the chunk vector store."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.db.documents import create_document
from backend.docqa.docs.chunker import chunk_text
from backend.docqa.errors import EmbeddingUnavailable, StorageError
from backend.docqa.llm.embeddings import HashingEmbeddingClient
from backend.docqa.models.documents import Chunk, ChunkMetadata, DocumentMeta
from backend.docqa.rag.vector_store import VectorStore, cosine_scores, cosine_similarity


class CountingEmbedder(HashingEmbeddingClient):
    """Hashing embedder that counts calls."""

    def __init__(self) -> None:
        super().__init__(dimensions=256)
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return await super().embed(text)


async def add_document(
    session: AsyncSession, store: VectorStore, filename: str, text: str, size: int = 500
) -> DocumentMeta:
    """Persist a document and index its chunks."""
    document = await create_document(session, filename=filename, content=text)
    await store.index(
        chunk_text(
            text,
            document_id=document.id,
            filename=filename,
            uploaded_at=document.uploaded_at,
            size=size,
            overlap=0,
        )
    )
    return document


def test_cosine_similarity() -> None:
    """Parallel vectors score 1, orthogonal 0, zero vectors 0."""
    assert cosine_similarity([1.0, 0.0], [2.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


@pytest.mark.asyncio
async def test_search_empty_store_skips_embedding(session: AsyncSession) -> None:
    """An empty store returns nothing without calling the embedder."""
    embedder = CountingEmbedder()
    store = VectorStore(session, embedder)

    assert await store.search("What color is the sky?") == []
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_index_counts_chunks(session: AsyncSession) -> None:
    """Every chunk is embedded and stored."""
    embedder = CountingEmbedder()
    store = VectorStore(session, embedder)

    await add_document(session, store, "long.txt", "word " * 100, size=100)

    assert await store.count() == 5
    assert len(embedder.calls) == 5


@pytest.mark.asyncio
async def test_search_ranks_relevant_chunk_first(
    session: AsyncSession, embedder: HashingEmbeddingClient
) -> None:
    """The chunk sharing the question's words ranks first, with its metadata."""
    store = VectorStore(session, embedder)
    await add_document(session, store, "doc1.txt", "The sky is blue.")
    await add_document(session, store, "doc2.txt", "Invoices are due at the end of each month.")

    results = await store.search("What color is the sky?")

    assert results[0].text == "The sky is blue."
    assert results[0].metadata.filename == "doc1.txt"
    assert results[0].score >= results[-1].score


@pytest.mark.asyncio
async def test_search_returns_at_most_k(
    session: AsyncSession, embedder: HashingEmbeddingClient
) -> None:
    """Results are capped at k; k=0 returns nothing."""
    store = VectorStore(session, embedder, k=3)
    for i in range(5):
        await add_document(session, store, f"doc{i}.txt", f"Fact number {i} about the sky.")

    assert len(await store.search("sky")) == 3
    assert len(await store.search("sky", k=1)) == 1
    assert await store.search("sky", k=0) == []


@pytest.mark.asyncio
async def test_search_scores_non_increasing(
    session: AsyncSession, embedder: HashingEmbeddingClient
) -> None:
    """Results come back by decreasing similarity."""
    store = VectorStore(session, embedder, k=10)
    await add_document(session, store, "a.txt", "apples and oranges")
    await add_document(session, store, "b.txt", "apples apples apples")
    await add_document(session, store, "c.txt", "bananas")

    scores = [r.score for r in await store.search("apples")]

    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_delete_by_owner_removes_only_that_document(
    session: AsyncSession, embedder: HashingEmbeddingClient
) -> None:
    """Chunks of other documents survive; deleting twice is a no-op."""
    store = VectorStore(session, embedder, k=10)
    doc1 = await add_document(session, store, "doc1.txt", "The sky is blue.")
    await add_document(session, store, "doc2.txt", "Grass is green.")

    assert await store.delete_by_owner(doc1.id) == 1
    assert await store.delete_by_owner(doc1.id) == 0

    results = await store.search("sky grass")
    assert [r.metadata.filename for r in results] == ["doc2.txt"]


class FailingEmbedder(HashingEmbeddingClient):
    """Embeds the first ``succeed`` texts, then reports the service unavailable."""

    def __init__(self, succeed: int) -> None:
        super().__init__(dimensions=256)
        self.succeed = succeed

    async def embed(self, text: str) -> list[float]:
        if self.succeed <= 0:
            raise EmbeddingUnavailable()
        self.succeed -= 1
        return await super().embed(text)


def sky_chunks(document: DocumentMeta, orders: list[int]) -> list[Chunk]:
    """Identical chunks of one document with the given orders."""
    metadata = ChunkMetadata(
        filename=document.filename, uploaded_at=document.uploaded_at, document_id=document.id
    )
    return [
        Chunk(document_id=document.id, order=order, text="The sky is blue.", metadata=metadata)
        for order in orders
    ]


def test_cosine_scores_against_many_rows() -> None:
    """One query is scored against every stored vector at once."""
    scores = cosine_scores([1.0, 0.0], [[3.0, 0.0], [0.0, 2.0], [1.0, 1.0]])

    assert scores.tolist() == pytest.approx([1.0, 0.0, 2**-0.5])


@pytest.mark.asyncio
async def test_equal_scores_rank_older_documents_first(
    session: AsyncSession, embedder: HashingEmbeddingClient
) -> None:
    """Identical chunks from an earlier upload rank ahead of later ones."""
    store = VectorStore(session, embedder, k=10)
    older = await create_document(session, filename="older.txt", content="The sky is blue.")
    newer = await create_document(session, filename="newer.txt", content="The sky is blue.")
    await store.index(sky_chunks(newer, [0]))
    await store.index(sky_chunks(older, [1, 0]))

    results = await store.search("What color is the sky?")

    assert [r.metadata.filename for r in results] == ["older.txt", "older.txt", "newer.txt"]
    assert len({r.score for r in results}) == 1


@pytest.mark.asyncio
async def test_index_keeps_chunks_before_embedding_failure(session: AsyncSession) -> None:
    """Chunks embedded before the failure stay stored and the failure propagates."""
    document = await create_document(session, filename="doc.txt", content="x")
    store = VectorStore(session, FailingEmbedder(succeed=1))

    with pytest.raises(EmbeddingUnavailable):
        await store.index(sky_chunks(document, [0, 1, 2]))

    assert await store.count() == 1


@pytest.mark.asyncio
async def test_index_reports_embedding_failure_when_commit_also_fails(
    session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failed commit on the error path does not mask the embedding error."""
    document = await create_document(session, filename="doc.txt", content="x")
    store = VectorStore(session, FailingEmbedder(succeed=1))
    monkeypatch.setattr(store, "_commit", AsyncMock(side_effect=StorageError()))

    with pytest.raises(EmbeddingUnavailable):
        await store.index(sky_chunks(document, [0, 1]))
