"""Request orchestration for chat, document drafting and user statistics.

Each service receives the store and AI gateway constructed at startup; none of
them keeps state of its own between requests.
"""

from __future__ import annotations

from typing import List, Optional, Tuple
import logging

from ..domain.chat_models import ChatMessage, ChatRequest, ChatResponse, ChatSession
from ..domain.document_models import (
    ActivityEntry,
    Document,
    DocumentDraftRequest,
    DocumentFilters,
    DocumentPatch,
    DocumentTypeInfo,
    UserStats,
)
from ..errors import EmptyPatchError, MissingFieldError
from ..infrastructure.store import PersistenceGateway, now_iso
from .ai_gateway import AIGateway, PromptContext
from .context_builder import ConversationContextBuilder
from .session_lifecycle import SessionLifecycle
from .templates import DocumentTemplateEngine, document_types


logger = logging.getLogger(__name__)

REVIEW_PROMPT = """Please review this {doc_type} document and provide feedback on:
1. Legal compliance with Indian law
2. Completeness of clauses
3. Potential improvements
4. Missing elements

Document content:
{content}"""

RECENT_ACTIVITY_LIMIT = 10


class ChatOrchestrator:
    def __init__(self, store: PersistenceGateway, ai: AIGateway) -> None:
        self._store = store
        self._ai = ai
        self._context = ConversationContextBuilder(store)
        self._sessions = SessionLifecycle(store)

    def chat(self, req: ChatRequest) -> ChatResponse:
        if not req.message or not req.user_id:
            raise MissingFieldError("message", "userId")
        handle = self._sessions.resolve(req.session_id)
        context = self._context.build(req.user_id, req.message, language=req.language, kind=req.message_type)
        reply = self._ai.generate(context)
        chat = self._sessions.record(
            req.user_id,
            handle,
            message=req.message,
            response=reply,
            language=req.language,
            message_type=req.message_type,
        )
        logger.info(
            "chat recorded user=%s session=%s kind=%s history=%d",
            req.user_id,
            chat.session_id,
            req.message_type,
            len(context.history),
        )
        return ChatResponse(
            response=reply,
            chat_id=chat.id,
            session_id=chat.session_id,
            language=req.language,
            timestamp=chat.timestamp,
        )

    def create_session(self, user_id: Optional[str], title: Optional[str] = None) -> ChatSession:
        if not user_id:
            raise MissingFieldError("userId")
        return self._sessions.create(user_id, title)

    def list_sessions(self, user_id: str) -> List[ChatSession]:
        return self._store.list_sessions(user_id)

    def delete_session(self, session_id: str) -> None:
        self._sessions.delete(session_id)
        logger.info("session deleted id=%s", session_id)

    def history(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ChatMessage], int]:
        if session_id:
            chats = self._store.list_messages(user_id, session_id, limit=limit, offset=offset)
            return chats, self._store.count_messages(user_id, session_id)
        chats = self._store.list_recent_messages(user_id, limit=limit, offset=offset)
        return chats, self._store.count_messages(user_id)

    def get_chat(self, chat_id: str) -> ChatMessage:
        return self._store.get_message(chat_id)


class DocumentService:
    def __init__(self, store: PersistenceGateway, ai: AIGateway) -> None:
        self._store = store
        self._ai = ai
        self._engine = DocumentTemplateEngine(ai)

    def document_types(self) -> List[DocumentTypeInfo]:
        return document_types()

    def draft(self, req: DocumentDraftRequest) -> Document:
        if not req.user_id or not req.title or not req.type:
            raise MissingFieldError("userId", "title", "type")
        content = self._engine.draft(
            req.type,
            req.language,
            description=req.description,
            fields=req.custom_fields,
        )
        doc = self._store.create_document(
            req.user_id,
            title=req.title,
            doc_type=req.type,
            content=content,
            language=req.language,
        )
        logger.info(
            "document drafted id=%s type=%s path=%s",
            doc.id,
            doc.type,
            "freeform" if req.description else "template",
        )
        return doc

    def list_documents(
        self,
        user_id: str,
        filters: Optional[DocumentFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Document], int]:
        docs = self._store.list_documents(user_id, filters, limit=limit, offset=offset)
        return docs, self._store.count_documents(user_id, filters)

    def get(self, document_id: str) -> Document:
        return self._store.get_document(document_id)

    def update(self, document_id: str, patch: DocumentPatch) -> Document:
        changes = patch.changes()
        if not changes:
            raise EmptyPatchError()
        # completed -> draft is refused inside the store, atomically with the write
        unless = "completed" if changes.get("status") == "draft" else None
        return self._store.update_document(document_id, changes, unless_status=unless)

    def mark_complete(self, document_id: str) -> Document:
        doc = self._store.get_document(document_id)
        if doc.status == "completed":
            return doc
        return self._store.update_document(document_id, {"status": "completed"})

    def review(self, document_id: str, language: str = "en") -> Tuple[str, str]:
        """Return ``(feedback, reviewed_at)``. The document itself is left untouched."""
        doc = self._store.get_document(document_id)
        context = PromptContext(
            prompt=REVIEW_PROMPT.format(doc_type=doc.type, content=doc.content),
            language=language,
            kind="document_review",
        )
        return self._ai.generate(context), now_iso()

    def delete(self, document_id: str) -> None:
        self._store.delete_document(document_id)
        logger.info("document deleted id=%s", document_id)


class UserStatsService:
    def __init__(self, store: PersistenceGateway) -> None:
        self._store = store

    def stats(self, user_id: str) -> UserStats:
        activity = [
            ActivityEntry(type="chat", date=m.timestamp)
            for m in self._store.list_recent_messages(user_id, limit=RECENT_ACTIVITY_LIMIT)
        ]
        activity.extend(
            ActivityEntry(type="document", date=d.created_at)
            for d in self._store.list_documents(user_id, limit=RECENT_ACTIVITY_LIMIT)
        )
        activity.sort(key=lambda a: a.date, reverse=True)
        return UserStats(
            total_chats=self._store.count_messages(user_id),
            total_documents=self._store.count_documents(user_id),
            total_sessions=len(self._store.list_sessions(user_id)),
            recent_activity=activity[:RECENT_ACTIVITY_LIMIT],
        )
