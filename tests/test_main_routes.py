import pytest

import resume_chat.main as main_mod


class _ConnOK:
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, _query):
        return 1


class _EngineOK:
    def connect(self):
        return _ConnOK()


class _EngineFail:
    def connect(self):
        raise RuntimeError("db down")


def test_health_live(client):
    resp = client.get("/health/live")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_health_ready_ok(monkeypatch, client):
    monkeypatch.setattr(main_mod, "engine", _EngineOK())
    resp = client.get("/health/ready")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ready"


def test_health_ready_not_ready(monkeypatch, client):
    monkeypatch.setattr(main_mod, "engine", _EngineFail())
    resp = client.get("/health/ready")
    assert resp.status_code == 503
    assert resp.json()["status"] == "not_ready"


def test_root(client):
    assert "Resume Chat API" in client.get("/").json()["message"]


def test_startup_rejects_placeholder_secret_in_production(monkeypatch):
    monkeypatch.setattr(main_mod.settings, "app_env", "production")
    monkeypatch.setattr(main_mod.settings, "secret_key", "replace-with-a-long-random-secret-key")
    monkeypatch.setattr(main_mod, "init_db", lambda: None)
    with pytest.raises(RuntimeError):
        main_mod.on_startup()


def test_startup_requires_ai_key_in_production(monkeypatch):
    monkeypatch.setattr(main_mod.settings, "app_env", "production")
    monkeypatch.setattr(main_mod.settings, "secret_key", "a-real-secret")
    monkeypatch.setattr(main_mod.settings, "ai_api_key", "")
    monkeypatch.setattr(main_mod, "init_db", lambda: None)
    with pytest.raises(RuntimeError):
        main_mod.on_startup()


def test_startup_development_initializes_db(monkeypatch):
    called = []
    monkeypatch.setattr(main_mod.settings, "app_env", "development")
    monkeypatch.setattr(main_mod, "init_db", lambda: called.append(True))
    main_mod.on_startup()
    assert called == [True]
