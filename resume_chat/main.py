import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from resume_chat.config import settings
from resume_chat.database import engine, init_db
from resume_chat.errors import HTTP_STATUS_BY_CODE, ChatServiceError
from resume_chat.logging_config import setup_logging
from resume_chat.routers import chat, resume

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Resume Chat API",
    description="Chat-based resume enhancement with an append-only history.",
    version="1.0.0",
)

cors_origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(resume.router)


@app.exception_handler(ChatServiceError)
async def chat_service_error_handler(request, exc: ChatServiceError):
    # Raised outside the service boundary, e.g. by the quota gate.
    return JSONResponse(
        status_code=HTTP_STATUS_BY_CODE.get(exc.code, 500),
        content={"status": False, "message": exc.message, "data": None, "error": exc.code},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    logger.exception("Unhandled server error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health/live")
def health_live():
    return {"status": "ok"}


@app.get("/health/ready")
def health_ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content={"status": "not_ready"})


@app.on_event("startup")
def on_startup():
    logger.info("Starting Resume Chat API")
    env = (settings.app_env or "development").lower()
    if env in {"production", "prod"}:
        if settings.secret_key == "replace-with-a-long-random-secret-key":
            raise RuntimeError("SECRET_KEY placeholder is not allowed in production")
        if not settings.ai_api_key:
            raise RuntimeError("AI_API_KEY must be set in production")
    elif settings.secret_key == "replace-with-a-long-random-secret-key":
        logger.warning("SECRET_KEY is using placeholder default. Set SECRET_KEY in .env for secure deployments.")
    init_db()


@app.get("/")
def root():
    return {"message": "Resume Chat API. POST to /resume/chat/enhance to refine a resume."}
