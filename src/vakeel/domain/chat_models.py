from __future__ import annotations

from typing import Any, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


Language = Literal["en", "hi", "ta", "te", "bn"]
MessageKind = Literal["general", "document_draft", "document_review"]

DEFAULT_LANGUAGE: Language = "en"
DEFAULT_SESSION_TITLE = "New Conversation"
TITLE_PREFIX_LENGTH = 50


def derive_session_title(first_message: str) -> str:
    """Title for a session named after its first message."""
    return first_message[:TITLE_PREFIX_LENGTH] + "..."


def coerce_identifier(value: Any) -> Any:
    """Opaque ids may arrive as JSON numbers; keep them as text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ApiModel(BaseModel):
    """Base for wire models whose JSON keys are camelCase."""

    model_config = ConfigDict(populate_by_name=True)


class ChatSession(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: str
    updated_at: str
    message_count: int = 0


class ChatMessage(BaseModel):
    """One request/reply exchange."""

    id: str
    user_id: str
    session_id: str
    message: str
    response: str
    language: str
    message_type: str
    timestamp: str
    session_title: Optional[str] = None


class ChatRequest(ApiModel):
    message: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    language: Language = DEFAULT_LANGUAGE
    message_type: MessageKind = Field(default="general", alias="messageType")
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    ids_as_text = field_validator("user_id", "session_id", mode="before")(coerce_identifier)


class ChatResponse(ApiModel):
    success: bool = True
    response: str
    chat_id: str = Field(alias="chatId")
    session_id: str = Field(alias="sessionId")
    language: str
    timestamp: str


class SessionCreateRequest(ApiModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    title: Optional[str] = None

    ids_as_text = field_validator("user_id", mode="before")(coerce_identifier)


class SessionCreateResponse(ApiModel):
    success: bool = True
    session_id: str = Field(alias="sessionId")
    message: str = "Chat session created successfully"


class SessionListResponse(ApiModel):
    success: bool = True
    sessions: List[ChatSession]


class ChatHistoryResponse(ApiModel):
    success: bool = True
    chats: List[ChatMessage]
    total: int


class ChatDetailResponse(ApiModel):
    success: bool = True
    chat: ChatMessage


class SuccessResponse(ApiModel):
    success: bool = True
    message: Optional[str] = None
