"""Conversation store - chats and their append-only message history."""

import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.docqa.db.models import Chat as ChatDB
from backend.docqa.db.models import Message as MessageDB
from backend.docqa.db.models import utcnow
from backend.docqa.errors import translate_storage_errors
from backend.docqa.models.chats import DEFAULT_CHAT_TITLE, Chat, ChatMessage, Role


def to_chat(row: ChatDB) -> Chat:
    """Map an ORM row to the domain model."""
    return Chat(id=row.id, title=row.title, created_at=row.created_at)


def to_message(row: MessageDB) -> ChatMessage:
    """Map an ORM row to the domain model, validating the role."""
    return ChatMessage(
        role=row.role,  # type: ignore[arg-type]
        content=row.content,
        created_at=row.created_at,
    )


@translate_storage_errors
async def create_chat(session: AsyncSession, title: str | None = None) -> Chat:
    """Create a chat; blank titles fall back to the default title."""
    row = ChatDB(
        id=uuid.uuid4(),
        title=(title or "").strip() or DEFAULT_CHAT_TITLE,
        created_at=utcnow(),
    )
    session.add(row)
    chat = to_chat(row)
    await session.commit()
    return chat


@translate_storage_errors
async def list_chats(session: AsyncSession) -> list[Chat]:
    """List chats, newest first."""
    result = await session.execute(select(ChatDB).order_by(ChatDB.created_at.desc()))
    return [to_chat(row) for row in result.scalars().all()]


@translate_storage_errors
async def get_chat(session: AsyncSession, chat_id: uuid.UUID) -> Chat | None:
    """Fetch a chat header."""
    row = await session.get(ChatDB, chat_id)
    return to_chat(row) if row is not None else None


@translate_storage_errors
async def update_chat_title(
    session: AsyncSession,
    chat_id: uuid.UUID,
    title: str,
    *,
    only_if_default: bool = False,
) -> bool:
    """Set a chat title.

    Args:
        session: Database session
        chat_id: Chat to rename
        title: New title
        only_if_default: Only rename while the chat still has the default
            title (used for the auto-title derived from the first question)

    Returns:
        True if a row was updated
    """
    stmt = update(ChatDB).where(ChatDB.id == chat_id).values(title=title)
    if only_if_default:
        stmt = stmt.where(ChatDB.title == DEFAULT_CHAT_TITLE)

    result = await session.execute(stmt)
    await session.commit()
    return bool(result.rowcount)


@translate_storage_errors
async def delete_chat(session: AsyncSession, chat_id: uuid.UUID) -> bool:
    """Delete a chat and all of its messages.

    Returns:
        True if the chat existed
    """
    await session.execute(delete(MessageDB).where(MessageDB.chat_id == chat_id))
    result = await session.execute(delete(ChatDB).where(ChatDB.id == chat_id))
    await session.commit()
    return bool(result.rowcount)


@translate_storage_errors
async def append_message(
    session: AsyncSession, chat_id: uuid.UUID, role: Role, content: str
) -> ChatMessage:
    """Append a message and commit it immediately."""
    row = MessageDB(chat_id=chat_id, role=role, content=content, created_at=utcnow())
    session.add(row)
    message = to_message(row)
    await session.commit()
    return message


@translate_storage_errors
async def list_messages(
    session: AsyncSession, chat_id: uuid.UUID, limit: int | None = None
) -> list[ChatMessage]:
    """List messages oldest first.

    Args:
        session: Database session
        chat_id: Chat to read
        limit: Keep only the most recent ``limit`` messages (still oldest first)

    Returns:
        Messages ordered by creation time ascending
    """
    if limit is None:
        stmt = select(MessageDB).where(MessageDB.chat_id == chat_id).order_by(
            MessageDB.created_at, MessageDB.id
        )
        result = await session.execute(stmt)
        return [to_message(row) for row in result.scalars().all()]

    stmt = (
        select(MessageDB)
        .where(MessageDB.chat_id == chat_id)
        .order_by(MessageDB.created_at.desc(), MessageDB.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [to_message(row) for row in reversed(result.scalars().all())]
