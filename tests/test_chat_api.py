from pymongo.errors import AutoReconnect
from fastapi.testclient import TestClient

from vakeel.api.main import create_app
from vakeel.infrastructure.store_mongo import MongoStore


def _chat(client, message, user="u1", **extra):
    payload = {"message": message, "userId": user}
    payload.update(extra)
    return client.post("/api/chat", json=payload)


def test_first_message_allocates_session(client):
    r = _chat(client, "What are my rights as a tenant?")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["response"] == "reply 1"
    assert body["language"] == "en"
    assert body["sessionId"] and body["chatId"]
    assert body["timestamp"].endswith("Z")

    sessions = client.get("/api/chat/sessions/u1").json()["sessions"]
    assert len(sessions) == 1
    assert sessions[0]["id"] == body["sessionId"]
    assert sessions[0]["title"] == "What are my rights as a tenant?..."
    assert sessions[0]["message_count"] == 1


def test_session_id_continues_conversation(client):
    first = _chat(client, "Hello").json()
    second = _chat(client, "Follow up", sessionId=first["sessionId"]).json()
    assert second["sessionId"] == first["sessionId"]
    assert second["chatId"] != first["chatId"]

    third = _chat(client, "Fresh topic").json()
    assert third["sessionId"] != first["sessionId"]

    sessions = client.get("/api/chat/sessions/u1").json()["sessions"]
    assert [s["id"] for s in sessions] == [third["sessionId"], first["sessionId"]]
    assert sessions[1]["message_count"] == 2


def test_missing_fields_rejected(client, fake_llm):
    r = client.post("/api/chat", json={"userId": "u1"})
    assert r.status_code == 400
    assert r.json() == {"error": "message and userId are required"}
    assert client.post("/api/chat", json={"message": "", "userId": "u1"}).status_code == 400
    assert client.post("/api/chat", json={}).status_code == 400
    assert fake_llm.calls == []


def test_numeric_user_id_is_accepted(client):
    r = client.post("/api/chat", json={"message": "Can my landlord keep the deposit?", "userId": 42})
    assert r.status_code == 200
    session_id = r.json()["sessionId"]
    sessions = client.get("/api/chat/sessions/42").json()["sessions"]
    assert [s["id"] for s in sessions] == [session_id]
    assert sessions[0]["user_id"] == "42"


def test_unknown_language_rejected(client):
    r = _chat(client, "hola", language="fr")
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_unknown_session_is_not_found(client, fake_llm, store):
    r = _chat(client, "hi", sessionId="does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"error": "Session not found"}
    assert fake_llm.calls == []
    assert store.count_messages("u1") == 0


def test_prompt_carries_five_most_recent_pairs(client, fake_llm):
    for i in range(7):
        _chat(client, f"question {i}")
    _chat(client, "question 7", language="hi")

    msgs = fake_llm.last_messages
    assert len(msgs) == 1 + 2 * 5 + 1
    assert msgs[0]["role"] == "system"
    assert [m["content"] for m in msgs[1:-1:2]] == [f"question {i}" for i in range(2, 7)]
    assert [m["content"] for m in msgs[2:-1:2]] == [f"reply {i}" for i in range(3, 8)]
    assert msgs[-1] == {"role": "user", "content": "question 7"}


def test_drafting_message_is_wrapped(client, fake_llm):
    r = _chat(client, "a leave and licence agreement", messageType="document_draft")
    assert r.status_code == 200
    assert fake_llm.last_messages[-1]["content"].startswith(
        "Please help me draft a legal document. User request: a leave and licence agreement"
    )


def test_created_session_takes_first_message_title(client):
    r = client.post("/api/chat/sessions", json={"userId": "u1"})
    assert r.status_code == 200
    sid = r.json()["sessionId"]
    assert r.json()["message"] == "Chat session created successfully"

    listed = client.get("/api/chat/sessions/u1").json()["sessions"]
    assert listed[0]["title"] == "New Conversation"

    _chat(client, "Consumer court filing", sessionId=sid)
    listed = client.get("/api/chat/sessions/u1").json()["sessions"]
    assert listed[0]["title"] == "Consumer court filing..."


def test_create_session_requires_user(client):
    r = client.post("/api/chat/sessions", json={"title": "x"})
    assert r.status_code == 400
    assert r.json() == {"error": "userId is required"}


def test_history_across_and_within_sessions(client):
    a = _chat(client, "a1").json()["sessionId"]
    _chat(client, "b1")
    _chat(client, "a2", sessionId=a)

    everything = client.get("/api/chat/history/u1").json()
    assert everything["total"] == 3
    assert [c["message"] for c in everything["chats"]] == ["a2", "b1", "a1"]
    assert everything["chats"][0]["session_title"] == "a1..."

    scoped = client.get(f"/api/chat/history/u1?sessionId={a}").json()
    assert scoped["total"] == 2
    assert [c["message"] for c in scoped["chats"]] == ["a1", "a2"]

    paged = client.get("/api/chat/history/u1?limit=1&offset=1").json()
    assert paged["total"] == 3
    assert [c["message"] for c in paged["chats"]] == ["b1"]


def test_get_single_chat(client):
    chat_id = _chat(client, "Explain bail").json()["chatId"]
    r = client.get(f"/api/chat/{chat_id}")
    assert r.status_code == 200
    chat = r.json()["chat"]
    assert chat["message"] == "Explain bail"
    assert chat["response"] == "reply 1"
    assert chat["message_type"] == "general"

    missing = client.get("/api/chat/nope")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Chat not found"}


def test_delete_session_removes_its_messages(client):
    gone = _chat(client, "to delete").json()
    kept = _chat(client, "to keep").json()

    r = client.delete(f"/api/chat/sessions/{gone['sessionId']}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Chat session deleted successfully"}

    assert client.get(f"/api/chat/{gone['chatId']}").status_code == 404
    assert client.get(f"/api/chat/{kept['chatId']}").status_code == 200
    history = client.get("/api/chat/history/u1").json()
    assert [c["message"] for c in history["chats"]] == ["to keep"]

    assert client.delete(f"/api/chat/sessions/{gone['sessionId']}").status_code == 404


def test_store_outage_maps_to_503(settings, ai, fake_db):
    fake_db.failure = AutoReconnect("primary stepped down")
    fake_db.fail_on = {"find", "insert_one", "count_documents"}
    client = TestClient(create_app(settings=settings, store=MongoStore(fake_db), ai_gateway=ai))
    r = _chat(client, "hello")
    assert r.status_code == 503
    assert r.json() == {"error": "Durable store unavailable"}
