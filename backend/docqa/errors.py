"""Error taxonomy shared by stores, clients, the orchestrator and the API.

Every error carries an HTTP status and a client-safe message. Upstream and
storage failures use generic messages; their cause is only logged.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

P = ParamSpec("P")
T = TypeVar("T")


class DocQAError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DocQAError):
    """Bad or missing input."""

    status_code = 400
    default_message = "Invalid request"


class EmptyQuestion(ValidationError):
    """Question is blank or whitespace-only."""

    default_message = "No question provided"


class NoDocuments(ValidationError):
    """Nothing has been uploaded, so nothing can be retrieved."""

    default_message = "No documents uploaded. Please upload a file first."


class UnsupportedFileType(ValidationError):
    """Upload has an extension outside the allowed set."""

    default_message = "Unsupported file type. Allowed: .txt, .pdf, .md, .docx"


class NotFoundError(DocQAError):
    """Referenced document or chat does not exist."""

    status_code = 404
    default_message = "Not found"


class UpstreamError(DocQAError):
    """Embedding or generation service failure."""

    status_code = 502
    default_message = "Upstream model service failed"


class EmbeddingUnavailable(UpstreamError):
    """Embedding service unreachable or returned an error."""

    default_message = "Embedding service unavailable"


class EmbeddingAuthError(UpstreamError):
    """Embedding service rejected the credentials."""

    default_message = "Embedding service rejected credentials"


class GenerationError(UpstreamError):
    """Generation service failed."""

    default_message = "Failed to generate answer"


class StorageError(DocQAError):
    """Database failure."""

    status_code = 500
    default_message = "Database error"


def translate_storage_errors(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[T]]:
    """Re-raise SQLAlchemy failures from a store operation as StorageError."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            raise StorageError() from e

    return wrapper
