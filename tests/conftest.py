import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
src_str = str(ROOT / "src")
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from fastapi.testclient import TestClient  # noqa: E402

from vakeel.api.main import create_app  # noqa: E402
from vakeel.config import Settings  # noqa: E402
from vakeel.infrastructure.store import InMemoryStore  # noqa: E402
from vakeel.services.ai_gateway import AIGateway  # noqa: E402


class FakeLLM:
    """Records every upstream call and answers with a numbered reply."""

    def __init__(self) -> None:
        self.calls: List[List[Dict[str, str]]] = []
        self.error: Exception | None = None

    def invoke(self, messages):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=f"reply {len(self.calls)}")

    @property
    def last_messages(self) -> List[Dict[str, str]]:
        return self.calls[-1]


@pytest.fixture(autouse=True)
def _public_mode(monkeypatch):
    monkeypatch.setenv("VAKEEL_PUBLIC_MODE", "true")


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def ai(settings, fake_llm) -> AIGateway:
    return AIGateway(settings, llm_factory=lambda _s: fake_llm)


@pytest.fixture
def client(settings, store, ai) -> TestClient:
    return TestClient(create_app(settings=settings, store=store, ai_gateway=ai))


# --- minimal stand-in for the pymongo collection API used by MongoStore ---


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict) and "$in" in cond:
            if value not in cond["$in"]:
                return False
        elif isinstance(cond, dict) and "$ne" in cond:
            if value == cond["$ne"]:
                return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, keys, direction=None):
        if isinstance(keys, str):
            keys = [(keys, direction or 1)]
        for key, order in reversed(list(keys)):
            self._docs.sort(key=lambda d: d.get(key), reverse=order < 0)
        return self

    def skip(self, n: int):
        self._docs = self._docs[n:]
        return self

    def limit(self, n: int):
        if n:
            self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter([dict(d) for d in self._docs])


class FakeCollection:
    def __init__(self, db: "FakeDatabase") -> None:
        self._db = db
        self.docs: List[Dict[str, Any]] = []

    def create_index(self, *args, **kwargs):
        return "ok"

    def insert_one(self, doc):
        self._db.check("insert_one")
        self._db.next_id += 1
        stored = dict(doc, _id=self._db.next_id)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    def find(self, query=None):
        self._db.check("find")
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    def find_one(self, query):
        self._db.check("find_one")
        for d in self.docs:
            if _matches(d, query):
                return dict(d)
        return None

    def update_one(self, query, update):
        self._db.check("update_one")
        for d in self.docs:
            if _matches(d, query):
                d.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def delete_one(self, query):
        self._db.check("delete_one")
        for i, d in enumerate(self.docs):
            if _matches(d, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def delete_many(self, query):
        self._db.check("delete_many")
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return SimpleNamespace(deleted_count=before - len(self.docs))

    def count_documents(self, query):
        self._db.check("count_documents")
        return sum(1 for d in self.docs if _matches(d, query))


class FakeDatabase:
    def __init__(self) -> None:
        self.next_id = 0
        self.fail_on: set[str] = set()
        self.failure: Exception | None = None
        self._collections: Dict[str, FakeCollection] = {}

    def check(self, op: str) -> None:
        if self.failure is not None and op in self.fail_on:
            raise self.failure

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection(self))


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()
