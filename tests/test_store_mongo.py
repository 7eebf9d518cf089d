import pytest
from pymongo.errors import ServerSelectionTimeoutError

from vakeel.config import Settings
from vakeel.domain.document_models import DocumentFilters
from vakeel.errors import InvalidTransitionError, NotFoundError, StoreUnavailableError
from vakeel.infrastructure import store_mongo
from vakeel.infrastructure.store import DURABLE, InMemoryStore, build_store
from vakeel.infrastructure.store_mongo import MongoStore


@pytest.fixture
def mongo(fake_db):
    store = MongoStore(fake_db)
    store.ensure_indexes()
    return store


def _exercise(store):
    """Same call sequence for both backends; returns a comparable summary."""
    first = store.append_message("u1", None, "Is a verbal rent agreement valid?", "r1", "en", "general")
    store.append_message("u1", first.session_id, "What about stamp duty?", "r2", "hi", "general")
    named = store.create_session("u1", title="Named")
    store.append_message("u1", named.id, "hello", "r3", "en", "document_draft")
    untitled = store.create_session("u1")

    d1 = store.create_document("u1", "Lease", "rent_agreement", "c1", "en")
    store.create_document("u1", "Secret", "nda", "c2", "en")
    store.update_document(d1.id, {"status": "completed"})

    sessions = store.list_sessions("u1")
    return {
        "sessions": [(s.title, s.message_count) for s in sessions],
        "untitled_first": sessions[0].id == untitled.id,
        "recent": [(m.message, m.session_title) for m in store.list_recent_messages("u1", limit=10)],
        "in_session": [m.message for m in store.list_messages("u1", first.session_id)],
        "count_all": store.count_messages("u1"),
        "count_session": store.count_messages("u1", first.session_id),
        "docs": [(d.title, d.status) for d in store.list_documents("u1")],
        "completed": store.count_documents("u1", DocumentFilters(status="completed")),
    }


def test_mongo_and_memory_backends_agree(mongo):
    assert _exercise(mongo) == _exercise(InMemoryStore())


def test_mongo_session_title_and_counts(mongo, fake_db):
    chat = mongo.append_message("u1", None, "Explain Section 138 of the Negotiable Instruments Act", "r", "en", "general")
    sess = mongo.get_session(chat.session_id)
    assert sess.title == "Explain Section 138 of the Negotiable Instruments ..."
    assert sess.message_count == 1
    assert mongo.get_message(chat.id).session_title == sess.title


def test_mongo_untitled_session_adopts_first_message(mongo):
    sess = mongo.create_session("u1")
    mongo.append_message("u1", sess.id, "first", "r", "en", "general")
    mongo.append_message("u1", sess.id, "second", "r", "en", "general")
    assert mongo.get_session(sess.id).title == "first..."


def test_mongo_not_found_paths(mongo):
    with pytest.raises(NotFoundError):
        mongo.get_session("missing")
    with pytest.raises(NotFoundError):
        mongo.append_message("u1", "missing", "m", "r", "en", "general")
    with pytest.raises(NotFoundError):
        mongo.get_message("missing")
    with pytest.raises(NotFoundError):
        mongo.delete_session("missing")
    with pytest.raises(NotFoundError):
        mongo.get_document("missing")
    with pytest.raises(NotFoundError):
        mongo.update_document("missing", {"title": "x"})
    with pytest.raises(NotFoundError):
        mongo.delete_document("missing")


def test_mongo_delete_session_cascades(mongo, fake_db):
    keep = mongo.append_message("u1", None, "keep", "r", "en", "general")
    gone = mongo.append_message("u1", None, "gone", "r", "en", "general")
    mongo.delete_session(gone.session_id)
    assert [d["id"] for d in fake_db["chats"].docs] == [keep.id]
    assert mongo.count_messages("u1") == 1


def test_mongo_driver_failure_surfaces_as_unavailable(mongo, fake_db):
    fake_db.failure = ServerSelectionTimeoutError("down")
    fake_db.fail_on = {"find", "find_one", "insert_one", "count_documents"}
    with pytest.raises(StoreUnavailableError):
        mongo.list_sessions("u1")
    with pytest.raises(StoreUnavailableError):
        mongo.create_document("u1", "t", "nda", "c", "en")
    with pytest.raises(StoreUnavailableError) as exc:
        mongo.get_document("x")
    assert exc.value.status_code == 503


def test_mongo_failed_first_message_leaves_no_session(mongo, fake_db):
    original_insert = fake_db["chats"].insert_one

    def failing_insert(doc):
        raise ServerSelectionTimeoutError("write failed")

    fake_db["chats"].insert_one = failing_insert
    with pytest.raises(StoreUnavailableError):
        mongo.append_message("u1", None, "hello", "r", "en", "general")
    assert fake_db["chat_sessions"].docs == []

    fake_db["chats"].insert_one = original_insert
    mongo.append_message("u1", None, "hello", "r", "en", "general")
    assert len(fake_db["chat_sessions"].docs) == 1


def test_mongo_failed_session_bump_rolls_back_message(mongo, fake_db):
    fake_db.failure = ServerSelectionTimeoutError("write failed")
    fake_db.fail_on = {"update_one"}
    with pytest.raises(StoreUnavailableError):
        mongo.append_message("u1", None, "hello", "r", "en", "general")
    assert fake_db["chats"].docs == []
    assert fake_db["chat_sessions"].docs == []


def test_mongo_failed_bump_keeps_existing_session_intact(mongo, fake_db):
    first = mongo.append_message("u1", None, "Is a verbal rent agreement valid?", "r1", "en", "general")
    before = mongo.get_session(first.session_id)

    fake_db.failure = ServerSelectionTimeoutError("write failed")
    fake_db.fail_on = {"update_one"}
    with pytest.raises(StoreUnavailableError):
        mongo.append_message("u1", first.session_id, "And stamp duty?", "r2", "en", "general")
    fake_db.fail_on = set()

    assert [m.message for m in mongo.list_messages("u1", first.session_id)] == ["Is a verbal rent agreement valid?"]
    after = mongo.get_session(first.session_id)
    assert after.title == before.title
    assert after.updated_at == before.updated_at


def test_mongo_completed_document_refuses_draft(mongo):
    doc = mongo.create_document("u1", "Lease", "rent_agreement", "body", "en")
    mongo.update_document(doc.id, {"status": "completed"}, unless_status="completed")
    with pytest.raises(InvalidTransitionError):
        mongo.update_document(doc.id, {"status": "draft"}, unless_status="completed")
    assert mongo.get_document(doc.id).status == "completed"
    with pytest.raises(NotFoundError):
        mongo.update_document("missing", {"status": "draft"}, unless_status="completed")


def test_build_store_uses_mongo_when_reachable(monkeypatch, fake_db):
    monkeypatch.setattr(store_mongo, "connect_mongo_store", lambda settings: MongoStore(fake_db))
    built = build_store(Settings(mongo_url="mongodb://db:27017"))
    assert built.backend == DURABLE


def test_build_store_falls_back_when_ping_fails(monkeypatch):
    monkeypatch.setattr(store_mongo, "connect_mongo_store", lambda settings: None)
    built = build_store(Settings(mongo_url="mongodb://unreachable:27017"))
    assert isinstance(built, InMemoryStore)


def test_connect_returns_none_on_ping_failure(monkeypatch):
    class _Client:
        def __init__(self, *args, **kwargs):
            pass

        def server_info(self):
            raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(store_mongo, "MongoClient", _Client)
    assert store_mongo.connect_mongo_store(Settings(mongo_url="mongodb://x:1")) is None
