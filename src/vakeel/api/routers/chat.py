from __future__ import annotations

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...domain.chat_models import (
    ChatDetailResponse,
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    SessionCreateRequest,
    SessionCreateResponse,
    SessionListResponse,
    SuccessResponse,
)
from ...security.auth import get_current_user
from ...services.orchestrator import ChatOrchestrator
from ..dependencies import get_chat_orchestrator


router = APIRouter(prefix="/chat", tags=["chat"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=ChatResponse)
def post_chat(
    req: ChatRequest,
    chat: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> ChatResponse:
    return chat.chat(req)


@router.get("/sessions/{user_id}", response_model=SessionListResponse)
def list_sessions(
    user_id: str,
    chat: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> SessionListResponse:
    return SessionListResponse(sessions=chat.list_sessions(user_id))


@router.post("/sessions", response_model=SessionCreateResponse)
def create_session(
    req: SessionCreateRequest,
    chat: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> SessionCreateResponse:
    sess = chat.create_session(req.user_id, req.title)
    return SessionCreateResponse(session_id=sess.id)


@router.delete("/sessions/{session_id}", response_model=SuccessResponse)
def delete_session(
    session_id: str,
    chat: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> SuccessResponse:
    chat.delete_session(session_id)
    return SuccessResponse(message="Chat session deleted successfully")


@router.get("/history/{user_id}", response_model=ChatHistoryResponse)
def chat_history(
    user_id: str,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    limit: int = Query(50, ge=0, le=500),
    offset: int = Query(0, ge=0),
    chat: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> ChatHistoryResponse:
    chats, total = chat.history(user_id, session_id=session_id, limit=limit, offset=offset)
    return ChatHistoryResponse(chats=chats, total=total)


@router.get("/{chat_id}", response_model=ChatDetailResponse)
def get_chat(
    chat_id: str,
    chat: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> ChatDetailResponse:
    return ChatDetailResponse(chat=chat.get_chat(chat_id))
