"""Document chunker - fixed-size sliding window over raw text."""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from backend.docqa.models.documents import Chunk, ChunkMetadata


@dataclass(frozen=True)
class ChunkSequence:
    """Lazy, restartable sequence of overlapping chunks of one document.

    Nothing is computed until iteration, and every iteration starts over,
    yielding the same chunks for the same input. Windows start at
    ``0, step, 2*step, ...`` where ``step = size - overlap``; the last window
    runs to the end of the text, so trailing content is never dropped and
    ``chunks[0] + "".join(c[overlap:] for c in chunks[1:]) == text``.
    """

    text: str
    size: int
    overlap: int
    document_id: UUID
    filename: str
    uploaded_at: datetime

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError(f"chunk size must be positive, got {self.size}")
        if not 0 <= self.overlap < self.size:
            raise ValueError(
                f"chunk overlap must satisfy 0 <= overlap < size, got {self.overlap}"
            )

    def windows(self) -> Iterator[tuple[int, int]]:
        """Yield (start, end) offsets of every chunk."""
        length = len(self.text)
        step = self.size - self.overlap
        start = 0
        while start < length:
            end = min(start + self.size, length)
            yield start, end
            if end == length:
                return
            start += step

    def __iter__(self) -> Iterator[Chunk]:
        metadata = ChunkMetadata(
            filename=self.filename,
            uploaded_at=self.uploaded_at,
            document_id=self.document_id,
        )
        for order, (start, end) in enumerate(self.windows()):
            yield Chunk(
                document_id=self.document_id,
                order=order,
                text=self.text[start:end],
                metadata=metadata,
            )

    def __len__(self) -> int:
        return sum(1 for _ in self.windows())


def chunk_text(
    text: str,
    *,
    document_id: UUID,
    filename: str,
    uploaded_at: datetime,
    size: int = 500,
    overlap: int = 100,
) -> ChunkSequence:
    """Split document text into overlapping fixed-size chunks.

    Pure function with no I/O or randomness: same input, same chunks.

    Args:
        text: Raw document text
        document_id: Owning document, copied into every chunk
        filename: Stored in chunk metadata
        uploaded_at: Stored in chunk metadata
        size: Maximum characters per chunk (default 500)
        overlap: Characters shared by consecutive chunks (default 100)

    Returns:
        ChunkSequence; empty text yields no chunks

    Raises:
        ValueError: If size <= 0 or overlap is not in [0, size)
    """
    return ChunkSequence(
        text=text,
        size=size,
        overlap=overlap,
        document_id=document_id,
        filename=filename,
        uploaded_at=uploaded_at,
    )
