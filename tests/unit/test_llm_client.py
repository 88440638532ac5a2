"""Tests for LLM clients.

All tests are deterministic and do not make real network calls.
"""

from collections.abc import AsyncIterator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest
from pydantic import SecretStr

from backend.docqa.config import Settings
from backend.docqa.errors import GenerationError
from backend.docqa.llm.client import DeterministicStubClient, OpenAIClient, build_llm_client
from backend.docqa.rag.prompt import GroundedPrompt

COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


def delta(content: str | None) -> SimpleNamespace:
    """Minimal stand-in for a ChatCompletionChunk."""
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    """Async stream of completion chunks that records being closed."""

    def __init__(self, chunks: list[object], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[object]:
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def prompt() -> GroundedPrompt:
    """Prompt grounded on a single chunk."""
    return GroundedPrompt(question="What color is the sky?", context=["The sky is blue."])


def openai_client(result: object) -> tuple[OpenAIClient, AsyncMock]:
    """OpenAI client whose completion call is mocked."""
    client = OpenAIClient(api_key="sk-test", max_tokens=64)
    create = AsyncMock(side_effect=[result])
    client.client.chat.completions.create = create  # type: ignore[method-assign]
    return client, create


class TestDeterministicStubClient:
    """Tests for the offline stub."""

    @pytest.mark.asyncio
    async def test_answers_from_first_chunk(self, prompt: GroundedPrompt) -> None:
        """Fragments join into an answer quoting the first context chunk."""
        fragments = [f async for f in DeterministicStubClient().stream_answer(prompt)]

        assert len(fragments) > 1
        assert "".join(fragments) == "According to your documents: The sky is blue."

    @pytest.mark.asyncio
    async def test_without_context(self) -> None:
        """No context yields an explicit don't-know answer."""
        fragments = [
            f async for f in DeterministicStubClient().stream_answer(GroundedPrompt("q", []))
        ]

        assert "".join(fragments).endswith("I don't know.")


class TestOpenAIClient:
    """Tests for OpenAI streaming."""

    @pytest.mark.asyncio
    async def test_streams_fragments_in_order(self, prompt: GroundedPrompt) -> None:
        """Content deltas are relayed in order; empty deltas are skipped."""
        stream = FakeStream([delta("The "), delta(None), delta("sky"), delta(" is blue.")])
        client, create = openai_client(stream)

        fragments = [f async for f in client.stream_answer(prompt)]

        assert fragments == ["The ", "sky", " is blue."]
        assert stream.closed
        kwargs = create.await_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["max_tokens"] == 64
        assert "The sky is blue." in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_chunks_without_choices_skipped(self, prompt: GroundedPrompt) -> None:
        """Usage-only chunks carry no choices."""
        stream = FakeStream([SimpleNamespace(choices=[]), delta("ok")])
        client, _ = openai_client(stream)

        assert [f async for f in client.stream_answer(prompt)] == ["ok"]

    @pytest.mark.asyncio
    async def test_request_failure_raises_generation_error(self, prompt: GroundedPrompt) -> None:
        """Failure to open the stream maps to GenerationError."""
        request = httpx.Request("POST", COMPLETIONS_URL)
        client, _ = openai_client(openai.APIConnectionError(request=request))

        with pytest.raises(GenerationError):
            async for _ in client.stream_answer(prompt):
                pass

    @pytest.mark.asyncio
    async def test_mid_stream_failure_closes_stream(self, prompt: GroundedPrompt) -> None:
        """An error after some fragments is wrapped and the stream is closed."""
        request = httpx.Request("POST", COMPLETIONS_URL)
        stream = FakeStream([delta("partial")], error=openai.APIConnectionError(request=request))
        client, _ = openai_client(stream)

        received = []
        with pytest.raises(GenerationError):
            async for fragment in client.stream_answer(prompt):
                received.append(fragment)

        assert received == ["partial"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_closing_early_closes_upstream(self, prompt: GroundedPrompt) -> None:
        """Abandoning the iterator stops the upstream stream."""
        stream = FakeStream([delta("a"), delta("b"), delta("c")])
        client, _ = openai_client(stream)

        fragments = client.stream_answer(prompt)
        assert await fragments.__anext__() == "a"
        await fragments.aclose()

        assert stream.closed


def test_build_without_key_uses_stub() -> None:
    """No API key selects the deterministic stub."""
    assert isinstance(build_llm_client(Settings(openai_api_key=None)), DeterministicStubClient)


def test_build_with_key_uses_openai() -> None:
    """A configured key selects OpenAI with the configured model."""
    client = build_llm_client(Settings(openai_api_key=SecretStr("sk-test"), openai_model="gpt-4o"))

    assert isinstance(client, OpenAIClient)
    assert client.model == "gpt-4o"
