"""Conversation domain models."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]

DEFAULT_CHAT_TITLE = "New Chat"


class Chat(BaseModel):
    """Conversation header."""

    id: UUID
    title: str
    created_at: datetime = Field(..., serialization_alias="createdAt")


class ChatMessage(BaseModel):
    """Single conversation turn."""

    role: Role
    content: str
    created_at: datetime = Field(..., serialization_alias="createdAt")
