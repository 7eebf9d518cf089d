"""Mongo-backed persistence gateway.

Collections: ``chat_sessions``, ``chats`` and ``documents``. Records carry a
string ``id`` (uuid hex); Mongo's own ``_id`` only breaks timestamp ties.
Any driver failure at request time surfaces as ``StoreUnavailableError``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from ..config import Settings
from ..domain.chat_models import (
    ChatMessage,
    ChatSession,
    DEFAULT_SESSION_TITLE,
    derive_session_title,
)
from ..domain.document_models import Document, DocumentFilters
from ..errors import InvalidTransitionError, NotFoundError, StoreUnavailableError
from .store import DOCUMENT_FIELDS, DURABLE, new_id, now_iso


logger = logging.getLogger(__name__)


class MongoStore:
    backend = DURABLE

    def __init__(self, database: Any) -> None:
        self._db = database
        self._sessions = database["chat_sessions"]
        self._chats = database["chats"]
        self._documents = database["documents"]

    def ensure_indexes(self) -> None:
        with self._guard("ensure_indexes"):
            self._sessions.create_index("id", unique=True)
            self._sessions.create_index([("user_id", ASCENDING), ("updated_at", DESCENDING)])
            self._chats.create_index("id", unique=True)
            self._chats.create_index([("user_id", ASCENDING), ("timestamp", DESCENDING)])
            self._chats.create_index("session_id")
            self._documents.create_index("id", unique=True)
            self._documents.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
            self._documents.create_index("type")

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as exc:
            logger.error("Mongo operation %s failed: %s", op, exc)
            raise StoreUnavailableError("Durable store unavailable") from exc

    # sessions / messages

    def _to_session(self, doc: Dict[str, Any], message_count: int) -> ChatSession:
        return ChatSession(
            id=str(doc["id"]),
            user_id=str(doc["user_id"]),
            title=str(doc.get("title") or DEFAULT_SESSION_TITLE),
            created_at=str(doc["created_at"]),
            updated_at=str(doc["updated_at"]),
            message_count=message_count,
        )

    def _to_message(self, doc: Dict[str, Any], session_title: Optional[str]) -> ChatMessage:
        return ChatMessage(
            id=str(doc["id"]),
            user_id=str(doc["user_id"]),
            session_id=str(doc["session_id"]),
            message=str(doc.get("message", "")),
            response=str(doc.get("response", "")),
            language=str(doc.get("language", "en")),
            message_type=str(doc.get("message_type", "general")),
            timestamp=str(doc["timestamp"]),
            session_title=session_title,
        )

    def _with_titles(self, docs: List[Dict[str, Any]]) -> List[ChatMessage]:
        session_ids = list({d["session_id"] for d in docs})
        titles: Dict[str, str] = {}
        if session_ids:
            for sess in self._sessions.find({"id": {"$in": session_ids}}):
                titles[sess["id"]] = sess.get("title")
        return [self._to_message(d, titles.get(d["session_id"])) for d in docs]

    def _session_doc(self, owner_id: str, title: Optional[str]) -> Dict[str, Any]:
        now = now_iso()
        return {
            "id": new_id(),
            "user_id": owner_id,
            "title": title or DEFAULT_SESSION_TITLE,
            "auto_title": not title,
            "created_at": now,
            "updated_at": now,
        }

    def create_session(self, owner_id: str, title: Optional[str] = None) -> ChatSession:
        doc = self._session_doc(owner_id, title)
        with self._guard("create_session"):
            self._sessions.insert_one(dict(doc))
        return self._to_session(doc, 0)

    def get_session(self, session_id: str) -> ChatSession:
        with self._guard("get_session"):
            doc = self._sessions.find_one({"id": session_id})
            if not doc:
                raise NotFoundError("Session", session_id)
            return self._to_session(doc, self._chats.count_documents({"session_id": session_id}))

    def append_message(
        self,
        owner_id: str,
        session_id: Optional[str],
        message: str,
        response: str,
        language: str,
        message_type: str,
    ) -> ChatMessage:
        with self._guard("append_message"):
            created = False
            if session_id is None:
                sess = self._session_doc(owner_id, derive_session_title(message))
                self._sessions.insert_one(dict(sess))
                created = True
            else:
                sess = self._sessions.find_one({"id": session_id})
                if not sess:
                    raise NotFoundError("Session", session_id)
            now = now_iso()
            chat = {
                "id": new_id(),
                "user_id": owner_id,
                "session_id": sess["id"],
                "message": message,
                "response": response,
                "language": language,
                "message_type": message_type,
                "timestamp": now,
            }
            update: Dict[str, Any] = {"updated_at": now}
            title = sess.get("title")
            if sess.get("auto_title"):
                title = derive_session_title(message)
                update.update({"title": title, "auto_title": False})
            inserted = False
            try:
                self._chats.insert_one(dict(chat))
                inserted = True
                self._sessions.update_one({"id": sess["id"]}, {"$set": update})
            except PyMongoError:
                # Either the message and its session bump both land, or neither does
                if inserted:
                    self._chats.delete_one({"id": chat["id"]})
                if created:
                    self._sessions.delete_one({"id": sess["id"]})
                raise
            return self._to_message(chat, title)

    def list_sessions(self, owner_id: str) -> List[ChatSession]:
        with self._guard("list_sessions"):
            cursor = self._sessions.find({"user_id": owner_id}).sort(
                [("updated_at", DESCENDING), ("_id", DESCENDING)]
            )
            return [
                self._to_session(doc, self._chats.count_documents({"session_id": doc["id"]}))
                for doc in cursor
            ]

    def list_recent_messages(self, owner_id: str, limit: int, offset: int = 0) -> List[ChatMessage]:
        if limit <= 0:
            return []
        with self._guard("list_recent_messages"):
            cursor = (
                self._chats.find({"user_id": owner_id})
                .sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
                .skip(max(0, offset))
                .limit(limit)
            )
            return self._with_titles(list(cursor))

    def list_messages(
        self,
        owner_id: str,
        session_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ChatMessage]:
        if limit is not None and limit <= 0:
            return []
        with self._guard("list_messages"):
            cursor = (
                self._chats.find({"user_id": owner_id, "session_id": session_id})
                .sort([("timestamp", ASCENDING), ("_id", ASCENDING)])
                .skip(max(0, offset))
            )
            if limit is not None:
                cursor = cursor.limit(limit)
            return self._with_titles(list(cursor))

    def count_messages(self, owner_id: str, session_id: Optional[str] = None) -> int:
        query: Dict[str, Any] = {"user_id": owner_id}
        if session_id is not None:
            query["session_id"] = session_id
        with self._guard("count_messages"):
            return int(self._chats.count_documents(query))

    def get_message(self, message_id: str) -> ChatMessage:
        with self._guard("get_message"):
            doc = self._chats.find_one({"id": message_id})
            if not doc:
                raise NotFoundError("Chat", message_id)
            return self._with_titles([doc])[0]

    def delete_session(self, session_id: str) -> None:
        with self._guard("delete_session"):
            if not self._sessions.find_one({"id": session_id}):
                raise NotFoundError("Session", session_id)
            self._chats.delete_many({"session_id": session_id})
            self._sessions.delete_one({"id": session_id})

    # documents

    def _to_document(self, doc: Dict[str, Any]) -> Document:
        return Document(
            id=str(doc["id"]),
            user_id=str(doc["user_id"]),
            title=str(doc.get("title", "")),
            type=str(doc.get("type", "")),
            content=str(doc.get("content", "")),
            language=str(doc.get("language", "en")),
            status=doc.get("status", "draft"),
            created_at=str(doc["created_at"]),
            updated_at=str(doc["updated_at"]),
        )

    def _document_query(self, owner_id: str, filters: Optional[DocumentFilters]) -> Dict[str, Any]:
        query: Dict[str, Any] = {"user_id": owner_id}
        if filters is not None:
            if filters.type is not None:
                query["type"] = filters.type
            if filters.status is not None:
                query["status"] = filters.status
        return query

    def create_document(
        self,
        owner_id: str,
        title: str,
        doc_type: str,
        content: str,
        language: str,
    ) -> Document:
        now = now_iso()
        doc = {
            "id": new_id(),
            "user_id": owner_id,
            "title": title,
            "type": doc_type,
            "content": content,
            "language": language,
            "status": "draft",
            "created_at": now,
            "updated_at": now,
        }
        with self._guard("create_document"):
            self._documents.insert_one(dict(doc))
        return self._to_document(doc)

    def get_document(self, document_id: str) -> Document:
        with self._guard("get_document"):
            doc = self._documents.find_one({"id": document_id})
        if not doc:
            raise NotFoundError("Document", document_id)
        return self._to_document(doc)

    def update_document(
        self,
        document_id: str,
        changes: Dict[str, Any],
        unless_status: Optional[str] = None,
    ) -> Document:
        fields = {k: v for k, v in changes.items() if k in DOCUMENT_FIELDS}
        fields["updated_at"] = now_iso()
        query: Dict[str, Any] = {"id": document_id}
        if unless_status is not None:
            query["status"] = {"$ne": unless_status}
        with self._guard("update_document"):
            result = self._documents.update_one(query, {"$set": fields})
            if result.matched_count == 0:
                if unless_status is not None and self._documents.find_one({"id": document_id}):
                    raise InvalidTransitionError(f"Document is already {unless_status}")
                raise NotFoundError("Document", document_id)
            doc = self._documents.find_one({"id": document_id})
        if not doc:
            raise NotFoundError("Document", document_id)
        return self._to_document(doc)

    def delete_document(self, document_id: str) -> None:
        with self._guard("delete_document"):
            result = self._documents.delete_one({"id": document_id})
        if result.deleted_count == 0:
            raise NotFoundError("Document", document_id)

    def list_documents(
        self,
        owner_id: str,
        filters: Optional[DocumentFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Document]:
        if limit <= 0:
            return []
        with self._guard("list_documents"):
            cursor = (
                self._documents.find(self._document_query(owner_id, filters))
                .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
                .skip(max(0, offset))
                .limit(limit)
            )
            return [self._to_document(doc) for doc in cursor]

    def count_documents(self, owner_id: str, filters: Optional[DocumentFilters] = None) -> int:
        with self._guard("count_documents"):
            return int(self._documents.count_documents(self._document_query(owner_id, filters)))


def connect_mongo_store(settings: Settings) -> Optional[MongoStore]:
    """Return a ready ``MongoStore`` or ``None`` when the server cannot be reached."""
    try:
        client: MongoClient = MongoClient(settings.mongo_url, serverSelectionTimeoutMS=settings.mongo_timeout_ms)
        # Trigger server selection
        client.server_info()
        store = MongoStore(client[settings.mongo_db])
        store.ensure_indexes()
        return store
    except (PyMongoError, StoreUnavailableError) as exc:
        logger.warning("Mongo ping failed url=%s: %s", settings.mongo_url, exc)
        return None
