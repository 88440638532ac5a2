"""Grounded prompt assembly."""

from dataclasses import dataclass, field

from backend.docqa.models.chats import ChatMessage

CONTEXT_SEPARATOR = "\n\n---\n\n"

PROMPT_TEMPLATE = """You are a helpful assistant.
Use the following pieces of context to answer the question at the end.
If the answer is not in the context, say "I don't know".
Do not try to make up an answer.

Context:
{context}

{history}
Question:
{question}

Answer:
"""


def render_history(messages: list[ChatMessage]) -> str:
    """Render prior turns as a transcript, oldest first."""
    return "\n".join(
        f"{'Human' if m.role == 'user' else 'Assistant'}: {m.content}" for m in messages
    )


@dataclass(frozen=True)
class GroundedPrompt:
    """Generation request constrained to retrieved context."""

    question: str
    context: list[str]
    history: list[ChatMessage] = field(default_factory=list)

    def render(self) -> str:
        """Render the single prompt sent to the generative model."""
        history_text = render_history(self.history)
        history_section = f"Previous conversation:\n{history_text}\n" if history_text else ""
        return PROMPT_TEMPLATE.format(
            context=CONTEXT_SEPARATOR.join(self.context),
            history=history_section,
            question=self.question,
        )
