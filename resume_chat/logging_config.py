import logging
import sys

# Per-request chatter from servers, AI transports and the PDF stack.
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "botocore", "pdfminer")

# Repo and parsing work runs in threadpool workers, so the thread name is kept.
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        from resume_chat.config import settings

        level = settings.log_level
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(level: int | str | None = None) -> None:
    """Send every resume_chat log line to stdout at `level` (default: LOG_LEVEL)."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    root.handlers.clear()
    root.addHandler(handler)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
