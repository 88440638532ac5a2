"""Models package - re-exports for convenience."""

from backend.docqa.models.chats import DEFAULT_CHAT_TITLE, Chat, ChatMessage, Role
from backend.docqa.models.documents import (
    Chunk,
    ChunkMetadata,
    Document,
    DocumentMeta,
    RetrievedChunk,
)
from backend.docqa.models.events import (
    AnswerEvent,
    DoneEvent,
    ErrorEvent,
    Source,
    SourcesEvent,
    TextEvent,
    decode_sse,
    encode_sse,
)

__all__ = [
    "DEFAULT_CHAT_TITLE",
    "AnswerEvent",
    "Chat",
    "ChatMessage",
    "Chunk",
    "ChunkMetadata",
    "Document",
    "DocumentMeta",
    "DoneEvent",
    "ErrorEvent",
    "RetrievedChunk",
    "Role",
    "Source",
    "SourcesEvent",
    "TextEvent",
    "decode_sse",
    "encode_sse",
]
