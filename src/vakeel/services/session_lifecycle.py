from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..domain.chat_models import ChatMessage, ChatSession
from ..infrastructure.store import PersistenceGateway


class SessionState(str, Enum):
    UNBOUND = "unbound"
    ACTIVE = "active"


@dataclass
class SessionHandle:
    state: SessionState
    session: Optional[ChatSession] = None

    @property
    def session_id(self) -> Optional[str]:
        return self.session.id if self.session else None


class SessionLifecycle:
    """Resolves the caller's session and records exchanges against it.

    A request without a session id stays ``UNBOUND`` until its first exchange
    is recorded; the store then mints the session (titled after the message)
    in the same atomic step as the append.
    """

    def __init__(self, store: PersistenceGateway) -> None:
        self._store = store

    def resolve(self, session_id: Optional[str]) -> SessionHandle:
        if not session_id:
            return SessionHandle(state=SessionState.UNBOUND)
        return SessionHandle(state=SessionState.ACTIVE, session=self._store.get_session(session_id))

    def record(
        self,
        owner_id: str,
        handle: SessionHandle,
        message: str,
        response: str,
        language: str,
        message_type: str,
    ) -> ChatMessage:
        chat = self._store.append_message(
            owner_id,
            handle.session_id,
            message=message,
            response=response,
            language=language,
            message_type=message_type,
        )
        if handle.state is SessionState.UNBOUND:
            handle.state = SessionState.ACTIVE
            handle.session = self._store.get_session(chat.session_id)
        return chat

    def create(self, owner_id: str, title: Optional[str] = None) -> ChatSession:
        return self._store.create_session(owner_id, title=title or None)

    def delete(self, session_id: str) -> None:
        self._store.delete_session(session_id)
