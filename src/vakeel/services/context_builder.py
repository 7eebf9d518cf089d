from __future__ import annotations

from typing import List, Optional

from ..infrastructure.store import PersistenceGateway
from .ai_gateway import HistoryPair, PromptContext


CONTEXT_WINDOW = 5

DRAFTING_INSTRUCTIONS = (
    "Please help me draft a legal document. User request: {message}\n\n"
    "Please provide a properly formatted document with:\n"
    "1. Appropriate legal structure\n"
    "2. Standard clauses relevant to Indian law\n"
    "3. Placeholder fields marked with [PLACEHOLDER]\n"
    "4. Clear sections and subsections"
)


def render_prompt(message: str, kind: str) -> str:
    """Apply the kind-specific prompt template; only drafting requests are wrapped."""
    if kind == "document_draft":
        return DRAFTING_INSTRUCTIONS.format(message=message)
    return message


class ConversationContextBuilder:
    """Builds the bounded, cross-session history window sent with each chat prompt."""

    def __init__(self, store: PersistenceGateway, window: int = CONTEXT_WINDOW) -> None:
        self._store = store
        self._window = window

    def history(self, owner_id: str) -> List[HistoryPair]:
        recent = self._store.list_recent_messages(owner_id, limit=self._window)
        # Store returns newest first; the prompt wants oldest first
        return [HistoryPair(message=m.message, response=m.response) for m in reversed(recent)]

    def build(
        self,
        owner_id: Optional[str],
        message: str,
        language: str = "en",
        kind: str = "general",
    ) -> PromptContext:
        history = self.history(owner_id) if owner_id else []
        return PromptContext(
            prompt=render_prompt(message, kind),
            language=language,
            kind=kind,
            history=history,
        )
