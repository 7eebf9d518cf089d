from __future__ import annotations

from fastapi import Depends, Request

from ..infrastructure.store import PersistenceGateway
from ..services.ai_gateway import AIGateway
from ..services.orchestrator import ChatOrchestrator, DocumentService, UserStatsService


def get_store(request: Request) -> PersistenceGateway:
    return request.app.state.store


def get_ai_gateway(request: Request) -> AIGateway:
    return request.app.state.ai_gateway


def get_chat_orchestrator(
    store: PersistenceGateway = Depends(get_store),
    ai: AIGateway = Depends(get_ai_gateway),
) -> ChatOrchestrator:
    return ChatOrchestrator(store, ai)


def get_document_service(
    store: PersistenceGateway = Depends(get_store),
    ai: AIGateway = Depends(get_ai_gateway),
) -> DocumentService:
    return DocumentService(store, ai)


def get_user_stats_service(store: PersistenceGateway = Depends(get_store)) -> UserStatsService:
    return UserStatsService(store)
