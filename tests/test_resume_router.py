from io import BytesIO

import resume_chat.routers.resume as resume_router


def test_upload_text_master_resume(client, fake_ai):
    resp = client.post(
        "/resume/master/upload",
        files={"file": ("resume.txt", BytesIO(b"Ada Lovelace\nEngineer"), "text/plain")},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["parsed_from"] == "txt"
    assert data["resume_data"]["name"] == "Extracted Person"

    fetched = client.get("/resume/master")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["id"] == data["id"]


def test_upload_rejects_unsupported_type(client):
    resp = client.post(
        "/resume/master/upload",
        files={"file": ("resume.exe", BytesIO(b"MZ"), "application/octet-stream")},
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_failure"


def test_upload_rejects_large_file(monkeypatch, client):
    monkeypatch.setattr(resume_router.settings, "max_resume_upload_mb", 1)
    huge = b"%PDF" + (b"A" * (1024 * 1024 + 10))
    resp = client.post(
        "/resume/master/upload",
        files={"file": ("resume.pdf", BytesIO(huge), "application/pdf")},
    )
    assert resp.status_code == 413


def test_get_master_missing_is_404(client):
    assert client.get("/resume/master").status_code == 404


def test_usage_reports_counts_and_limits(client):
    client.post("/resume/chat/enhance", json={"message": "abc"})
    resp = client.get("/resume/usage")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["daily_token_usage"] == 3
    assert data["active_chat_sessions"] == 1
    assert data["benefits"] == {"DAILY_TOKEN_LIMIT": 1000, "CHAT_SESSION_LIMIT": 3}


_RESUME = {"name": "Ada", "summary": "Builds APIs.", "skills": ["Python"]}


def test_standalone_enhance_and_global_history(client, fake_ai):
    resp = client.post("/resume/enhance", json={"resume_data": _RESUME, "message": "polish", "template_id": "t"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["enhanced_resume"]["summary"] == "Enhanced: Builds APIs."

    listed = client.get("/resume/history", params={"page": 1, "page_size": 5})
    assert listed.status_code == 200
    entries = listed.json()["data"]
    assert [e["id"] for e in entries] == [data["history_id"]]
    assert entries[0]["chat_id"] is None

    one = client.get(f"/resume/history/{data['history_id']}")
    assert one.status_code == 200
    assert one.json()["data"]["user_message"] == "polish"
    assert client.get("/resume/history/missing").status_code == 404


def test_standalone_enhance_requires_resume(client, fake_ai):
    assert client.post("/resume/enhance", json={"message": "polish"}).status_code == 422
    assert fake_ai.calls == []


def test_standalone_enhance_daily_token_limit_is_429(client, benefits):
    benefits.daily_token_limit = 3
    resp = client.post("/resume/enhance", json={"resume_data": _RESUME, "message": "abcd"})
    assert resp.status_code == 429
    assert resp.json()["error"] == "quota_exceeded"
