"""Answer orchestrator - retrieval-augmented, streamed answers.

Per question the orchestrator walks these states::

    VALIDATING -> RETRIEVING -> (NO_CONTEXT | GENERATING) -> STREAMING
               -> PERSISTING -> DONE

with ABORTED reachable from STREAMING (client disconnect) and FAILED from
anywhere. ``prepare`` runs everything up to the first generated token and
raises on bad input, so HTTP callers can still answer with a JSON error.
``stream`` relays the generation as ``AnswerEvent`` values; from that point
on failures become a single generic ``error`` event.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.db.chats import (
    append_message,
    create_chat,
    get_chat,
    list_messages,
    update_chat_title,
)
from backend.docqa.db.documents import count_documents
from backend.docqa.errors import DocQAError, EmptyQuestion, NoDocuments, NotFoundError
from backend.docqa.llm.client import LLMClient
from backend.docqa.models.chats import ChatMessage
from backend.docqa.models.documents import RetrievedChunk
from backend.docqa.models.events import (
    AnswerEvent,
    DoneEvent,
    ErrorEvent,
    Source,
    SourcesEvent,
    TextEvent,
)
from backend.docqa.rag.prompt import GroundedPrompt
from backend.docqa.rag.vector_store import VectorStore
from backend.docqa.utils.logging import StructuredAnswerLogger
from backend.docqa.utils.metrics import PrometheusAnswerMetrics, metrics

logger = logging.getLogger(__name__)

NO_CONTEXT_MESSAGE = (
    "I couldn't find any relevant information in your documents for this question."
)
GENERATION_FAILED_MESSAGE = "Failed to generate answer"
TITLE_MAX_CHARS = 50

DisconnectCheck = Callable[[], Awaitable[bool]]


class AnswerState(str, Enum):
    """Orchestrator state for one question."""

    VALIDATING = "validating"
    RETRIEVING = "retrieving"
    NO_CONTEXT = "no_context"
    GENERATING = "generating"
    STREAMING = "streaming"
    PERSISTING = "persisting"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


def derive_title(question: str) -> str:
    """Conversation title summarised from its first question."""
    title = " ".join(question.split())
    if len(title) <= TITLE_MAX_CHARS:
        return title
    return title[: TITLE_MAX_CHARS - 3].rstrip() + "..."


@dataclass
class PreparedAnswer:
    """Everything needed to stream an answer, produced by ``prepare``."""

    answer_id: str
    question: str
    conversation_id: uuid.UUID | None
    sources: list[RetrievedChunk]
    history: list[ChatMessage] = field(default_factory=list)
    state: AnswerState = AnswerState.RETRIEVING
    started_at: float = field(default_factory=time.perf_counter)

    @property
    def prompt(self) -> GroundedPrompt:
        """Grounded prompt: retrieved context, prior turns, question."""
        return GroundedPrompt(
            question=self.question,
            context=[chunk.text for chunk in self.sources],
            history=self.history,
        )

    @property
    def source_list(self) -> list[Source]:
        """Sources reported to the client after the answer."""
        return [Source(filename=chunk.metadata.filename, text=chunk.text) for chunk in self.sources]


class AnswerOrchestrator:
    """Answers a question from retrieved chunks, streaming the generation."""

    def __init__(
        self,
        *,
        session: AsyncSession,
        vector_store: VectorStore,
        llm: LLMClient,
        k: int = 3,
        history_limit: int | None = None,
        deadline_seconds: float = 60.0,
        answer_logger: StructuredAnswerLogger | None = None,
        answer_metrics: PrometheusAnswerMetrics | None = None,
    ) -> None:
        self._session = session
        self._vector_store = vector_store
        self._llm = llm
        self._k = k
        self._history_limit = history_limit
        self._deadline_seconds = deadline_seconds
        self._log = answer_logger or StructuredAnswerLogger()
        self._metrics = answer_metrics or metrics

    def _transition(self, prepared: PreparedAnswer, state: AnswerState, **details: object) -> None:
        prepared.state = state
        self._log.log_transition(
            prepared.answer_id,
            str(prepared.conversation_id) if prepared.conversation_id else None,
            state.value,
            latency_ms=(time.perf_counter() - prepared.started_at) * 1000,
            **details,
        )

    def _finish(self, prepared: PreparedAnswer, state: AnswerState, **details: object) -> None:
        self._transition(prepared, state, **details)
        self._metrics.record_answer(
            state.value, (time.perf_counter() - prepared.started_at) * 1000
        )

    async def prepare(
        self, question: str, conversation_id: uuid.UUID | None = None
    ) -> PreparedAnswer:
        """Validate, retrieve context, load history and record the user turn.

        Args:
            question: User question
            conversation_id: Existing conversation; a new one is created
                (titled from the question) when omitted

        Returns:
            PreparedAnswer in state GENERATING, or NO_CONTEXT when retrieval
            found nothing (then nothing has been persisted)

        Raises:
            EmptyQuestion: Blank question
            NoDocuments: Document store is empty
            NotFoundError: Unknown conversation id
            UpstreamError: Embedding the question failed
            StorageError: Database failure
        """
        prepared = PreparedAnswer(
            answer_id=uuid.uuid4().hex[:12],
            question=(question or "").strip(),
            conversation_id=conversation_id,
            sources=[],
        )

        try:
            self._transition(prepared, AnswerState.VALIDATING)
            if not prepared.question:
                raise EmptyQuestion()
            if await count_documents(self._session) == 0:
                raise NoDocuments()
            if conversation_id is not None:
                if await get_chat(self._session, conversation_id) is None:
                    raise NotFoundError("Chat not found")

            self._transition(prepared, AnswerState.RETRIEVING)
            prepared.sources = await self._vector_store.search(prepared.question, self._k)
            if not prepared.sources:
                prepared.state = AnswerState.NO_CONTEXT
                return prepared

            title = derive_title(prepared.question)
            if conversation_id is None:
                chat = await create_chat(self._session, title=title)
                prepared.conversation_id = chat.id
            else:
                prepared.history = await list_messages(
                    self._session, conversation_id, limit=self._history_limit
                )
                if not prepared.history:
                    await update_chat_title(
                        self._session, conversation_id, title, only_if_default=True
                    )

            # Recorded before generation so it survives a failed answer
            await append_message(
                self._session, prepared.conversation_id, "user", prepared.question
            )

        except DocQAError as e:
            self._finish(prepared, AnswerState.FAILED, error=type(e).__name__)
            raise

        self._transition(
            prepared,
            AnswerState.GENERATING,
            sources=len(prepared.sources),
            history=len(prepared.history),
        )
        return prepared

    async def stream(
        self,
        prepared: PreparedAnswer,
        *,
        session: AsyncSession | None = None,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[AnswerEvent]:
        """Relay the generation as events: ``text* -> sources -> done``.

        Args:
            prepared: Result of ``prepare``
            session: Session for persisting the answer (defaults to the
                orchestrator's own); streaming bodies outlive request sessions
            is_disconnected: Polled before every fragment; once it returns
                True the stream stops without persisting anything

        Yields:
            AnswerEvent values in order
        """
        if prepared.state is AnswerState.NO_CONTEXT:
            self._finish(prepared, AnswerState.NO_CONTEXT)
            yield ErrorEvent(content=NO_CONTEXT_MESSAGE)
            return

        persist_session = session or self._session
        fragments = self._llm.stream_answer(prepared.prompt)
        parts: list[str] = []
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._deadline_seconds
        generation_started = time.perf_counter()
        # Anything that leaves without reaching DONE or FAILED is an abort
        final_state = AnswerState.ABORTED

        try:
            self._transition(prepared, AnswerState.STREAMING)
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise TimeoutError(f"answer exceeded {self._deadline_seconds}s deadline")
                try:
                    fragment = await asyncio.wait_for(anext(fragments), timeout=remaining)
                except StopAsyncIteration:
                    break

                if is_disconnected is not None and await is_disconnected():
                    return

                if not parts:
                    self._metrics.record_first_fragment(
                        (time.perf_counter() - generation_started) * 1000
                    )
                parts.append(fragment)
                yield TextEvent(content=fragment)

            if is_disconnected is not None and await is_disconnected():
                return

            self._transition(prepared, AnswerState.PERSISTING, fragments=len(parts))
            await append_message(
                persist_session, prepared.conversation_id, "assistant", "".join(parts)
            )

            final_state = AnswerState.DONE
            yield SourcesEvent(content=prepared.source_list)
            yield DoneEvent()

        except Exception as e:
            logger.exception(f"Answer {prepared.answer_id} failed during streaming")
            final_state = AnswerState.FAILED
            self._finish(prepared, final_state, error=type(e).__name__)
            yield ErrorEvent(content=GENERATION_FAILED_MESSAGE)

        finally:
            await fragments.aclose()
            if final_state is not AnswerState.FAILED:
                self._finish(prepared, final_state, fragments=len(parts))

    async def answer(
        self,
        question: str,
        conversation_id: uuid.UUID | None = None,
        *,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[AnswerEvent]:
        """Prepare and stream in one go; pre-stream failures raise before the first event."""
        prepared = await self.prepare(question, conversation_id)
        async for event in self.stream(prepared, is_disconnected=is_disconnected):
            yield event
