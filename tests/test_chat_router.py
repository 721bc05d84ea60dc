from resume_chat.errors import ProviderUnavailable


def _resume():
    return {
        "name": "Ada",
        "summary": "Builds APIs.",
        "experience": [{"company": "ACME", "position": "Engineer", "from": "2021", "to": "Present"}],
        "skills": ["Python"],
    }


def test_enhance_creates_chat_and_returns_envelope(client, fake_ai):
    resp = client.post("/resume/chat/enhance", json={"message": "polish", "resume_data": _resume()})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] is True
    assert body["message"] == "Enhancement completed successfully"
    data = body["data"]
    assert data["chat_id"]
    assert data["current_resume"]["summary"] == "Enhanced: Builds APIs."
    assert data["current_resume"]["experience"][0]["from"] == "2021"
    assert data["title"] == "Generated Title"


def test_enhance_provider_unavailable_maps_to_503(client, fake_ai):
    fake_ai.error = ProviderUnavailable()
    resp = client.post("/resume/chat/enhance", json={"message": "polish", "resume_data": _resume()})
    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] is False
    assert body["data"] is None
    assert body["error"] == "provider_unavailable"


def test_enhance_empty_message_is_422(client):
    resp = client.post("/resume/chat/enhance", json={"message": ""})
    assert resp.status_code == 422


def test_enhance_unknown_chat_is_404(client):
    resp = client.post("/resume/chat/enhance", json={"message": "hi", "chat_id": "missing"})
    assert resp.status_code == 404
    assert resp.json()["message"] == "Chat session not found"


def test_enhance_daily_token_limit_is_429(client, benefits):
    benefits.daily_token_limit = 10
    ok = client.post("/resume/chat/enhance", json={"message": "123456"})
    assert ok.status_code == 200
    blocked = client.post("/resume/chat/enhance", json={"message": "12345"})
    assert blocked.status_code == 429
    assert blocked.json()["error"] == "quota_exceeded"


def test_create_session_limit_is_429(client, benefits):
    benefits.chat_session_limit = 1
    first = client.post("/resume/chat", json={"template_id": "tpl"})
    assert first.status_code == 200
    assert first.json()["data"]["template_id"] == "tpl"
    second = client.post("/resume/chat")
    assert second.status_code == 429


def test_session_crud_flow(client):
    chat_id = client.post("/resume/chat").json()["data"]["chat_id"]

    listed = client.get("/resume/chat", params={"page": 1, "page_size": 10})
    assert listed.status_code == 200
    assert [s["chat_id"] for s in listed.json()["data"]] == [chat_id]

    renamed = client.put(f"/resume/chat/{chat_id}/title", json={"title": "Platform roles"})
    assert renamed.status_code == 200
    assert renamed.json()["data"]["title"] == "Platform roles"

    saved = client.post(f"/resume/chat/{chat_id}/save", json={"resume_data": _resume(), "template_id": "t"})
    assert saved.status_code == 200
    assert saved.json()["data"] is True

    detail = client.get(f"/resume/chat/{chat_id}")
    assert detail.status_code == 200
    assert detail.json()["data"]["resume_data"]["name"] == "Ada"

    history = client.get(f"/resume/chat/{chat_id}/history", params={"sort_order": "asc"})
    entries = history.json()["data"]
    assert [h["entry_type"] for h in entries] == ["save"]

    one = client.get(f"/resume/chat/history/{entries[0]['id']}")
    assert one.status_code == 200
    assert one.json()["data"]["enhanced_resume"]["skills"] == ["Python"]

    deleted = client.delete(f"/resume/chat/{chat_id}")
    assert deleted.status_code == 200
    assert client.get(f"/resume/chat/{chat_id}").status_code == 404
    assert client.get(f"/resume/chat/{chat_id}/history").json()["data"][0]["id"] == entries[0]["id"]


def test_history_bad_sort_is_422(client):
    chat_id = client.post("/resume/chat").json()["data"]["chat_id"]
    resp = client.get(f"/resume/chat/{chat_id}/history", params={"sort_order": "random"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_failure"


def test_rename_too_long_is_422(client):
    chat_id = client.post("/resume/chat").json()["data"]["chat_id"]
    resp = client.put(f"/resume/chat/{chat_id}/title", json={"title": "x" * 401})
    assert resp.status_code == 422


def test_chat_routes_require_auth(db):
    from fastapi.testclient import TestClient

    from resume_chat.database import get_db
    from resume_chat.main import app

    def _db_override():
        yield db

    app.dependency_overrides[get_db] = _db_override
    try:
        resp = TestClient(app).get("/resume/chat")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 401


def test_enhance_without_chat_respects_session_limit(client, benefits):
    benefits.chat_session_limit = 1
    first = client.post("/resume/chat/enhance", json={"message": "polish", "resume_data": _resume()})
    assert first.status_code == 200
    chat_id = first.json()["data"]["chat_id"]

    blocked = client.post("/resume/chat/enhance", json={"message": "another chat", "resume_data": _resume()})
    assert blocked.status_code == 429
    assert blocked.json()["error"] == "quota_exceeded"

    same_chat = client.post("/resume/chat/enhance", json={"message": "more", "chat_id": chat_id})
    assert same_chat.status_code == 200
