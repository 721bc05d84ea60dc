import asyncio
import threading

import pytest

import resume_chat.database as dbmod


def test_connect_args_only_for_sqlite():
    assert dbmod._connect_args("sqlite:///./x.db") == {"check_same_thread": False}
    assert dbmod._connect_args("postgresql://u:p@localhost/db") == {}


def test_get_db_closes_session(monkeypatch):
    class _DB:
        def __init__(self):
            self.closed = False

        def close(self):
            self.closed = True

    inst = _DB()
    monkeypatch.setattr(dbmod, "SessionLocal", lambda: inst)
    gen = dbmod.get_db()
    got = next(gen)
    assert got is inst
    with pytest.raises(StopIteration):
        next(gen)
    assert inst.closed is True


def test_init_db_success_and_failure(monkeypatch):
    class _Meta:
        tables = {"chat_sessions": object()}

        def create_all(self, bind):
            return None

    monkeypatch.setattr(dbmod.Base, "metadata", _Meta())
    dbmod.init_db()

    class _MetaFail:
        def create_all(self, bind):
            raise RuntimeError("db fail")

    monkeypatch.setattr(dbmod.Base, "metadata", _MetaFail())
    with pytest.raises(RuntimeError):
        dbmod.init_db()


def test_ensure_tables_exist_creates_only_missing(monkeypatch):
    created = []

    class _Inspector:
        def get_table_names(self):
            return ["chat_sessions"]

    class _Meta:
        tables = {"chat_sessions": object(), "history_entries": object(), "master_resumes": object()}

        def create_all(self, bind):
            created.append(bind)

    monkeypatch.setattr(dbmod, "inspect", lambda _engine: _Inspector())
    monkeypatch.setattr(dbmod.Base, "metadata", _Meta())
    assert dbmod.ensure_tables_exist() == ["history_entries", "master_resumes"]
    assert created == [dbmod.engine]


def test_ensure_tables_exist_failure(monkeypatch):
    def _boom(_engine):
        raise RuntimeError("inspect failed")

    monkeypatch.setattr(dbmod, "inspect", _boom)
    with pytest.raises(RuntimeError):
        dbmod.ensure_tables_exist()


def test_ensure_tables_script_calls_helper(monkeypatch, capsys):
    import resume_chat.scripts.ensure_tables as script

    calls = []
    monkeypatch.setattr(script, "ensure_tables_exist", lambda: calls.append(True) or ["master_resumes"])
    monkeypatch.setattr(script, "setup_logging", lambda: None)
    script.main()
    assert calls == [True]
    assert "DB table check complete: 1 table(s) created." in capsys.readouterr().out


def test_run_blocking_runs_off_the_event_loop_thread():
    loop_thread = threading.get_ident()

    async def _run():
        return await dbmod.run_blocking(lambda x, y=0: (threading.get_ident(), x + y), 2, y=3)

    worker_thread, value = asyncio.run(_run())
    assert value == 5
    assert worker_thread != loop_thread
