"""Answer stream events - the tagged union relayed to the client as SSE.

Each event is serialised as one ``data: {"type": ..., "content": ...}`` frame.
A successful stream is ``text* -> sources -> done``; a failed one is
``text* -> error``. A stream that ends without ``done`` is inconclusive.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class Source(BaseModel):
    """Retrieved chunk shown to the user as evidence."""

    filename: str
    text: str


class TextEvent(BaseModel):
    """Incremental answer fragment."""

    type: Literal["text"] = "text"
    content: str


class SourcesEvent(BaseModel):
    """Chunks the answer was grounded on."""

    type: Literal["sources"] = "sources"
    content: list[Source]


class ErrorEvent(BaseModel):
    """Terminal failure with a client-safe message."""

    type: Literal["error"] = "error"
    content: str


class DoneEvent(BaseModel):
    """Terminal success marker."""

    type: Literal["done"] = "done"


AnswerEvent = Annotated[
    TextEvent | SourcesEvent | ErrorEvent | DoneEvent,
    Field(discriminator="type"),
]

answer_event_adapter: TypeAdapter[AnswerEvent] = TypeAdapter(AnswerEvent)


def encode_sse(event: AnswerEvent) -> str:
    """Encode an event as a Server-Sent-Events data frame."""
    return f"data: {event.model_dump_json()}\n\n"


def decode_sse(frame: str) -> AnswerEvent:
    """Parse a single ``data: ...`` frame back into an event."""
    payload = frame.strip()
    if not payload.startswith("data:"):
        raise ValueError(f"Not an SSE data frame: {frame!r}")
    return answer_event_adapter.validate_json(payload[len("data:") :].strip())
