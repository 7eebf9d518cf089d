"""Persistence gateway over sessions, chat messages and documents.

Two interchangeable implementations exist: ``MongoStore`` (durable) and
``InMemoryStore`` (ephemeral, lost on restart). ``build_store`` picks one at
startup; there is no per-request failover between them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from itertools import count
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol
import logging
import uuid

from ..config import Settings
from ..domain.chat_models import (
    ChatMessage,
    ChatSession,
    DEFAULT_SESSION_TITLE,
    derive_session_title,
)
from ..domain.document_models import Document, DocumentFilters
from ..errors import InvalidTransitionError, NotFoundError


logger = logging.getLogger(__name__)

EPHEMERAL = "ephemeral"
DURABLE = "durable"

DOCUMENT_FIELDS = ("title", "content", "status", "type")


class PersistenceGateway(Protocol):
    backend: str

    def create_session(self, owner_id: str, title: Optional[str] = None) -> ChatSession: ...

    def get_session(self, session_id: str) -> ChatSession: ...

    def append_message(
        self,
        owner_id: str,
        session_id: Optional[str],
        message: str,
        response: str,
        language: str,
        message_type: str,
    ) -> ChatMessage: ...

    def list_sessions(self, owner_id: str) -> List[ChatSession]: ...

    def list_recent_messages(self, owner_id: str, limit: int, offset: int = 0) -> List[ChatMessage]: ...

    def list_messages(
        self,
        owner_id: str,
        session_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ChatMessage]: ...

    def count_messages(self, owner_id: str, session_id: Optional[str] = None) -> int: ...

    def get_message(self, message_id: str) -> ChatMessage: ...

    def delete_session(self, session_id: str) -> None: ...

    def create_document(
        self,
        owner_id: str,
        title: str,
        doc_type: str,
        content: str,
        language: str,
    ) -> Document: ...

    def get_document(self, document_id: str) -> Document: ...

    def update_document(
        self,
        document_id: str,
        changes: Dict[str, Any],
        unless_status: Optional[str] = None,
    ) -> Document: ...

    def delete_document(self, document_id: str) -> None: ...

    def list_documents(
        self,
        owner_id: str,
        filters: Optional[DocumentFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Document]: ...

    def count_documents(self, owner_id: str, filters: Optional[DocumentFilters] = None) -> int: ...


def now_iso() -> str:
    # Fixed width so lexical order matches chronological order
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def new_id() -> str:
    return uuid.uuid4().hex


def _page(items: List[Any], limit: Optional[int], offset: int) -> List[Any]:
    start = max(0, offset)
    if limit is None:
        return items[start:]
    return items[start : start + max(0, limit)]


@dataclass
class _Session:
    seq: int
    id: str
    user_id: str
    title: str
    auto_title: bool
    created_at: str
    updated_at: str


@dataclass
class _Message:
    seq: int
    id: str
    user_id: str
    session_id: str
    message: str
    response: str
    language: str
    message_type: str
    timestamp: str


@dataclass
class _Document:
    seq: int
    id: str
    user_id: str
    title: str
    type: str
    content: str
    language: str
    status: str
    created_at: str
    updated_at: str


class InMemoryStore:
    """Process-local store. Chat and document collections each have their own lock."""

    backend = EPHEMERAL

    def __init__(self) -> None:
        self._sessions: Dict[str, _Session] = {}
        self._messages: Dict[str, _Message] = {}
        self._session_messages: Dict[str, List[str]] = {}
        self._owner_messages: Dict[str, List[str]] = {}
        self._documents: Dict[str, _Document] = {}
        self._seq = count(1)
        self._chat_lock = RLock()
        self._doc_lock = RLock()

    # sessions / messages

    def _session_model(self, sess: _Session) -> ChatSession:
        return ChatSession(
            id=sess.id,
            user_id=sess.user_id,
            title=sess.title,
            created_at=sess.created_at,
            updated_at=sess.updated_at,
            message_count=len(self._session_messages.get(sess.id, [])),
        )

    def _message_model(self, msg: _Message) -> ChatMessage:
        sess = self._sessions.get(msg.session_id)
        return ChatMessage(
            id=msg.id,
            user_id=msg.user_id,
            session_id=msg.session_id,
            message=msg.message,
            response=msg.response,
            language=msg.language,
            message_type=msg.message_type,
            timestamp=msg.timestamp,
            session_title=sess.title if sess else None,
        )

    def _new_session(self, owner_id: str, title: Optional[str]) -> _Session:
        now = now_iso()
        sess = _Session(
            seq=next(self._seq),
            id=new_id(),
            user_id=owner_id,
            title=title or DEFAULT_SESSION_TITLE,
            auto_title=not title,
            created_at=now,
            updated_at=now,
        )
        self._sessions[sess.id] = sess
        self._session_messages[sess.id] = []
        return sess

    def create_session(self, owner_id: str, title: Optional[str] = None) -> ChatSession:
        with self._chat_lock:
            return self._session_model(self._new_session(owner_id, title))

    def get_session(self, session_id: str) -> ChatSession:
        with self._chat_lock:
            sess = self._sessions.get(session_id)
            if not sess:
                raise NotFoundError("Session", session_id)
            return self._session_model(sess)

    def append_message(
        self,
        owner_id: str,
        session_id: Optional[str],
        message: str,
        response: str,
        language: str,
        message_type: str,
    ) -> ChatMessage:
        with self._chat_lock:
            if session_id is None:
                sess = self._new_session(owner_id, derive_session_title(message))
            else:
                sess = self._sessions.get(session_id)
                if not sess:
                    raise NotFoundError("Session", session_id)
            now = now_iso()
            msg = _Message(
                seq=next(self._seq),
                id=new_id(),
                user_id=owner_id,
                session_id=sess.id,
                message=message,
                response=response,
                language=language,
                message_type=message_type,
                timestamp=now,
            )
            self._messages[msg.id] = msg
            self._session_messages.setdefault(sess.id, []).append(msg.id)
            self._owner_messages.setdefault(owner_id, []).append(msg.id)
            if sess.auto_title:
                sess.title = derive_session_title(message)
                sess.auto_title = False
            sess.updated_at = now
            return self._message_model(msg)

    def list_sessions(self, owner_id: str) -> List[ChatSession]:
        with self._chat_lock:
            owned = [s for s in self._sessions.values() if s.user_id == owner_id]
            owned.sort(key=lambda s: (s.updated_at, s.seq), reverse=True)
            return [self._session_model(s) for s in owned]

    def list_recent_messages(self, owner_id: str, limit: int, offset: int = 0) -> List[ChatMessage]:
        with self._chat_lock:
            ids = list(reversed(self._owner_messages.get(owner_id, [])))
            return [self._message_model(self._messages[mid]) for mid in _page(ids, limit, offset)]

    def list_messages(
        self,
        owner_id: str,
        session_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ChatMessage]:
        with self._chat_lock:
            ids = self._session_messages.get(session_id, [])
            msgs = [self._messages[mid] for mid in ids if self._messages[mid].user_id == owner_id]
            return [self._message_model(m) for m in _page(msgs, limit, offset)]

    def count_messages(self, owner_id: str, session_id: Optional[str] = None) -> int:
        with self._chat_lock:
            if session_id is None:
                return len(self._owner_messages.get(owner_id, []))
            ids = self._session_messages.get(session_id, [])
            return sum(1 for mid in ids if self._messages[mid].user_id == owner_id)

    def get_message(self, message_id: str) -> ChatMessage:
        with self._chat_lock:
            msg = self._messages.get(message_id)
            if not msg:
                raise NotFoundError("Chat", message_id)
            return self._message_model(msg)

    def delete_session(self, session_id: str) -> None:
        with self._chat_lock:
            sess = self._sessions.pop(session_id, None)
            if not sess:
                raise NotFoundError("Session", session_id)
            doomed = set(self._session_messages.pop(session_id, []))
            for mid in doomed:
                self._messages.pop(mid, None)
            owner_ids = self._owner_messages.get(sess.user_id, [])
            self._owner_messages[sess.user_id] = [mid for mid in owner_ids if mid not in doomed]

    # documents

    def _document_model(self, doc: _Document) -> Document:
        return Document(
            id=doc.id,
            user_id=doc.user_id,
            title=doc.title,
            type=doc.type,
            content=doc.content,
            language=doc.language,
            status=doc.status,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )

    def _filtered(self, owner_id: str, filters: Optional[DocumentFilters]) -> List[_Document]:
        filters = filters or DocumentFilters()
        out = [
            d
            for d in self._documents.values()
            if d.user_id == owner_id
            and (filters.type is None or d.type == filters.type)
            and (filters.status is None or d.status == filters.status)
        ]
        out.sort(key=lambda d: (d.created_at, d.seq), reverse=True)
        return out

    def create_document(
        self,
        owner_id: str,
        title: str,
        doc_type: str,
        content: str,
        language: str,
    ) -> Document:
        with self._doc_lock:
            now = now_iso()
            doc = _Document(
                seq=next(self._seq),
                id=new_id(),
                user_id=owner_id,
                title=title,
                type=doc_type,
                content=content,
                language=language,
                status="draft",
                created_at=now,
                updated_at=now,
            )
            self._documents[doc.id] = doc
            return self._document_model(doc)

    def get_document(self, document_id: str) -> Document:
        with self._doc_lock:
            doc = self._documents.get(document_id)
            if not doc:
                raise NotFoundError("Document", document_id)
            return self._document_model(doc)

    def update_document(
        self,
        document_id: str,
        changes: Dict[str, Any],
        unless_status: Optional[str] = None,
    ) -> Document:
        """Apply ``changes``; refuse with a 409 when the document is currently ``unless_status``."""
        with self._doc_lock:
            doc = self._documents.get(document_id)
            if not doc:
                raise NotFoundError("Document", document_id)
            if unless_status is not None and doc.status == unless_status:
                raise InvalidTransitionError(f"Document is already {unless_status}")
            fields = {k: v for k, v in changes.items() if k in DOCUMENT_FIELDS}
            updated = replace(doc, **fields, updated_at=now_iso())
            self._documents[document_id] = updated
            return self._document_model(updated)

    def delete_document(self, document_id: str) -> None:
        with self._doc_lock:
            if self._documents.pop(document_id, None) is None:
                raise NotFoundError("Document", document_id)

    def list_documents(
        self,
        owner_id: str,
        filters: Optional[DocumentFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Document]:
        with self._doc_lock:
            return [self._document_model(d) for d in _page(self._filtered(owner_id, filters), limit, offset)]

    def count_documents(self, owner_id: str, filters: Optional[DocumentFilters] = None) -> int:
        with self._doc_lock:
            return len(self._filtered(owner_id, filters))


def build_store(settings: Settings) -> PersistenceGateway:
    """Ping the durable store once and return the backend to use for the process lifetime."""
    if not settings.mongo_url:
        logger.info("MONGO_URL not set; using ephemeral in-memory store")
        return InMemoryStore()

    from .store_mongo import connect_mongo_store  # pymongo is only imported when a URL is set

    store = connect_mongo_store(settings)
    if store is None:
        logger.warning("Durable store unreachable at startup; using ephemeral in-memory store")
        return InMemoryStore()
    logger.info("Using durable Mongo store db=%s", settings.mongo_db)
    return store
