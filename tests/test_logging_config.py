import logging

import resume_chat.logging_config as lc


def test_setup_logging_string_level():
    lc.setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_with_none_level_uses_settings(monkeypatch):
    from resume_chat.config import settings

    monkeypatch.setattr(settings, "log_level", "error")
    lc.setup_logging(None)
    assert logging.getLogger().level == logging.ERROR


def test_setup_logging_replaces_handlers():
    lc.setup_logging(logging.INFO)
    lc.setup_logging(logging.INFO)
    assert len(logging.getLogger().handlers) == 1


def test_setup_logging_quiets_transport_and_pdf_loggers():
    lc.setup_logging("info")
    for name in lc.NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    assert "threadName" in logging.getLogger().handlers[0].formatter._fmt


def test_setup_logging_unknown_level_name_falls_back_to_info():
    lc.setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO
