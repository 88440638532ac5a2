"""Conversation endpoints - /chats CRUD and GET /chats/{id} history."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from backend.docqa.api.common import SuccessResponse, parse_id
from backend.docqa.api.deps import SessionDep
from backend.docqa.db import chats as chat_store
from backend.docqa.errors import NotFoundError, ValidationError
from backend.docqa.models.chats import Chat, ChatMessage

router = APIRouter(prefix="/chats", tags=["chats"])


class CreateChatRequest(BaseModel):
    """Request body for POST /chats."""

    title: str | None = Field(None, max_length=200)


class UpdateChatRequest(BaseModel):
    """Request body for PATCH /chats."""

    id: uuid.UUID | None = None
    title: str | None = Field(None, max_length=200)


@router.get("", response_model=list[Chat])
async def list_chats(session: SessionDep) -> list[Chat]:
    """List conversations, newest first."""
    return await chat_store.list_chats(session)


@router.post("", response_model=Chat, status_code=status.HTTP_201_CREATED)
async def create_chat(
    session: SessionDep,
    request: CreateChatRequest | None = None,
) -> Chat:
    """Create a conversation (default title when none given)."""
    return await chat_store.create_chat(session, request.title if request else None)


@router.patch("", response_model=SuccessResponse)
async def rename_chat(request: UpdateChatRequest, session: SessionDep) -> SuccessResponse:
    """Rename a conversation."""
    if request.id is None or not request.title or not request.title.strip():
        raise ValidationError("Missing id or title")

    if not await chat_store.update_chat_title(session, request.id, request.title.strip()):
        raise NotFoundError("Chat not found")
    return SuccessResponse()


@router.delete("", response_model=SuccessResponse)
async def delete_chat(
    session: SessionDep,
    chat_id: Annotated[str | None, Query(alias="id")] = None,
) -> SuccessResponse:
    """Delete a conversation and its messages."""
    if not await chat_store.delete_chat(session, parse_id(chat_id)):
        raise NotFoundError("Chat not found")
    return SuccessResponse()


@router.get("/{chat_id}", response_model=list[ChatMessage])
async def get_chat_history(chat_id: uuid.UUID, session: SessionDep) -> list[ChatMessage]:
    """Full message history, oldest first."""
    if await chat_store.get_chat(session, chat_id) is None:
        raise NotFoundError("Chat not found")
    return await chat_store.list_messages(session, chat_id)
