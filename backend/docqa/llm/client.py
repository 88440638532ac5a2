"""LLM client for streamed answer generation with OpenAI integration.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic stub when no key is present for testing.
"""

import logging
from collections.abc import AsyncIterator
from typing import Protocol

import openai
from openai import AsyncOpenAI

from backend.docqa.config import Settings, get_settings
from backend.docqa.errors import GenerationError
from backend.docqa.rag.prompt import GroundedPrompt

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    """Protocol for LLM client implementations."""

    def stream_answer(self, prompt: GroundedPrompt) -> AsyncIterator[str]:
        """Stream answer fragments in arrival order.

        Closing the returned iterator abandons the upstream request.

        Raises:
            GenerationError: If the model call fails
        """
        ...


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required).

    Answers with the first context chunk, one word per fragment.
    """

    async def stream_answer(self, prompt: GroundedPrompt) -> AsyncIterator[str]:
        """Generate deterministic stub answer."""
        evidence = prompt.context[0] if prompt.context else "I don't know."
        words = f"According to your documents: {evidence}".split()
        for i, word in enumerate(words):
            yield word if i == 0 else f" {word}"


class OpenAIClient:
    """OpenAI-backed LLM client for real generation."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", max_tokens: int = 2048):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from settings)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            max_tokens: Upper bound on generated tokens
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    async def stream_answer(self, prompt: GroundedPrompt) -> AsyncIterator[str]:
        """Stream answer using the OpenAI chat completions API."""
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt.render()}],
                max_tokens=self.max_tokens,
                stream=True,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise GenerationError() from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield fragment
        except openai.OpenAIError as e:
            logger.error(f"OpenAI stream failed: {e}")
            raise GenerationError() from e
        finally:
            # Stops consuming upstream tokens on abort or error
            await stream.close()


def get_llm_client() -> LLMClient:
    """Factory/FastAPI dependency returning the configured LLM client.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    return build_llm_client(get_settings())


def build_llm_client(settings: Settings) -> LLMClient:
    """Build an LLM client from explicit settings."""
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        return OpenAIClient(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            max_tokens=settings.generation_max_tokens,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub client")
    return DeterministicStubClient()
