"""Embedding clients - query and chunk vectorisation.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic offline embedder when no key is present.
"""

import hashlib
import logging
import math
import re
from typing import Protocol

import openai
from openai import AsyncOpenAI

from backend.docqa.config import Settings, get_settings
from backend.docqa.errors import EmbeddingAuthError, EmbeddingUnavailable
from backend.docqa.utils.metrics import metrics

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")

# Transient failures worth the single bounded retry
_RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class EmbeddingClient(Protocol):
    """Protocol for embedding client implementations."""

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            EmbeddingUnavailable: Service unreachable or returned an error
            EmbeddingAuthError: Credentials rejected
        """
        ...


class HashingEmbeddingClient:
    """Deterministic offline embedder (no API key required).

    Hashes lower-cased word tokens into a fixed number of buckets and
    L2-normalises the counts, so texts sharing words have positive cosine
    similarity.
    """

    def __init__(self, dimensions: int = 256):
        self.dimensions = dimensions

    def _bucket(self, token: str) -> int:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big") % self.dimensions

    async def embed(self, text: str) -> list[float]:
        """Generate deterministic embedding."""
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            vector[self._bucket(token)] += 1.0

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0.0:
            return vector
        return [v / norm for v in vector]


class OpenAIEmbeddingClient:
    """OpenAI-backed embedding client."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        max_retries: int = 1,
    ):
        """Initialize OpenAI embedding client.

        Args:
            api_key: OpenAI API key (read from settings)
            model: Embedding model name
            max_retries: Extra attempts after a transient failure (bounded)
        """
        # Retries are handled here so the bound is explicit
        self.client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self.model = model
        self.max_retries = max_retries

    async def embed(self, text: str) -> list[float]:
        """Embed text with the OpenAI embeddings API."""
        attempt = 0
        while True:
            try:
                response = await self.client.embeddings.create(model=self.model, input=text)
                metrics.inc_embedding_call("success")
                return list(response.data[0].embedding)

            except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
                metrics.inc_embedding_call("auth_error")
                logger.error(f"Embedding credentials rejected: {e}")
                raise EmbeddingAuthError() from e

            except _RETRYABLE_ERRORS as e:
                if attempt < self.max_retries:
                    attempt += 1
                    logger.warning(f"Embedding call failed ({type(e).__name__}), retrying")
                    continue
                metrics.inc_embedding_call("unavailable")
                logger.error(f"Embedding call failed after {attempt + 1} attempt(s): {e}")
                raise EmbeddingUnavailable() from e

            except openai.OpenAIError as e:
                metrics.inc_embedding_call("unavailable")
                logger.error(f"Embedding call failed: {e}")
                raise EmbeddingUnavailable() from e


def get_embedding_client() -> EmbeddingClient:
    """Factory/FastAPI dependency returning the configured embedding client.

    Returns:
        OpenAIEmbeddingClient if API key is configured, HashingEmbeddingClient otherwise
    """
    return build_embedding_client(get_settings())


def build_embedding_client(settings: Settings) -> EmbeddingClient:
    """Build an embedding client from explicit settings."""
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        return OpenAIEmbeddingClient(
            api_key=api_key.get_secret_value(),
            model=settings.embedding_model,
            max_retries=settings.embedding_max_retries,
        )

    logger.debug("No OpenAI API key configured, using hashing embedder")
    return HashingEmbeddingClient(dimensions=settings.embedding_dimensions)
