"""Chat-based resume enhancement.

Every public method returns a ServiceResponse; errors never escape. One
Enhance call runs:

    resolve session -> resolve current resume -> build context -> call AI
    -> append one history entry -> update session metadata

A failure before the append leaves the log (and, for a brand-new chat, the
session table) exactly as it was.

Plain `def` operations only touch the database and run whole in the
threadpool. The async ones await the AI on the event loop and hand each
repo or parsing step to `run_blocking`.
"""

import functools
import inspect
import logging
import time
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from resume_chat.database import run_blocking
from resume_chat.errors import (
    ChatServiceError,
    NotFound,
    ProviderUnavailable,
    ValidationFailure,
)
from resume_chat.models.chat_session import ChatSession
from resume_chat.models.history_entry import HistoryEntry
from resume_chat.repos import history_repo, master_resume_repo, session_repo
from resume_chat.schemas.chat import (
    MAX_MESSAGE_LENGTH,
    MAX_TITLE_LENGTH,
    ChatMessage,
    EnhancementResult,
    HistoryDetail,
    HistorySummary,
    MasterResumeResponse,
    ServiceResponse,
    SessionDetail,
    SessionSummary,
    StandaloneEnhancementResult,
    UsageSummary,
)
from resume_chat.schemas.resume import ResumeSnapshot
from resume_chat.services import quota_tracker
from resume_chat.services.ai_orchestrator import ResumeAIService
from resume_chat.services.document_text import UnsupportedDocument, read_upload
from resume_chat.services.state_reconstructor import (
    build_conversation_context,
    resolve_current_html,
    resolve_current_resume,
)

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."
NO_RESUME_REPLY = (
    "I'm ready to help you enhance your resume. Please provide your resume data "
    "or ask me any questions about resume writing!"
)
HTML_ENHANCED_REPLY = (
    "I've enhanced your resume based on your request. The updated HTML is ready to be displayed in the editor."
)
JSON_ENHANCED_REPLY = "I've enhanced your resume based on your request. Here's the updated version."
SEED_REPLY = "Initial resume created"
SAVE_REPLY = "Resume saved"
MAX_PAGE_SIZE = 50
FALLBACK_TITLE_LENGTH = 50


def service_operation(success_message: str):
    """Convert the result or exception of a service method into a ServiceResponse.

    Synchronous methods are run in the threadpool.
    """

    def decorator(fn):
        is_async = inspect.iscoroutinefunction(fn)

        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs) -> ServiceResponse:
            try:
                if is_async:
                    data = await fn(self, *args, **kwargs)
                else:
                    data = await run_blocking(fn, self, *args, **kwargs)
            except ChatServiceError as e:
                logger.info("%s failed: %s (%s)", fn.__name__, e.code, e.__class__.__name__)
                return ServiceResponse(status=False, message=e.message, error=e.code)
            except Exception:
                logger.exception("Unhandled error in %s", fn.__name__)
                return ServiceResponse(status=False, message=GENERIC_FAILURE_MESSAGE, error="internal_error")
            return ServiceResponse(status=True, message=success_message, data=data)

        return wrapper

    return decorator


def fallback_title(message: str) -> str:
    message = message.strip()
    if len(message) > FALLBACK_TITLE_LENGTH:
        return message[:FALLBACK_TITLE_LENGTH - 3] + "..."
    return message


def _validate_message(message: str) -> None:
    if not message or not message.strip():
        raise ValidationFailure("Message is required")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationFailure(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")


def _clamp_page(page: int, page_size: int) -> tuple[int, int]:
    return max(1, page or 1), min(MAX_PAGE_SIZE, max(1, page_size or 1))


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _session_summary(session: ChatSession, message_count: int) -> SessionSummary:
    return SessionSummary(
        chat_id=session.id,
        title=session.title,
        created_at=session.created_at,
        updated_at=session.updated_at,
        message_count=message_count,
        is_active=session.is_active,
        template_id=session.template_id,
    )


def _chat_messages(entries: list[HistoryEntry]) -> list[ChatMessage]:
    messages: list[ChatMessage] = []
    for entry in entries:
        if entry.user_message:
            messages.append(
                ChatMessage(
                    id=f"{entry.id}_user",
                    role="user",
                    content=entry.user_message,
                    resume_data=ResumeSnapshot.from_document(entry.original_resume),
                    timestamp=entry.created_at,
                )
            )
        messages.append(
            ChatMessage(
                id=f"{entry.id}_assistant",
                role="assistant",
                content=entry.assistant_message or "",
                resume_data=ResumeSnapshot.from_document(entry.enhanced_resume),
                timestamp=entry.created_at,
                processing_time_ms=entry.processing_time_ms,
            )
        )
    return messages


def _history_detail(entry: HistoryEntry) -> HistoryDetail:
    return HistoryDetail(
        id=entry.id,
        chat_id=entry.chat_id,
        entry_type=entry.entry_type,
        template_id=entry.template_id,
        user_message=entry.user_message,
        assistant_message=entry.assistant_message or "",
        original_resume=ResumeSnapshot.from_document(entry.original_resume),
        enhanced_resume=ResumeSnapshot.from_document(entry.enhanced_resume),
        resume_html=entry.resume_html,
        enhanced_html=entry.enhanced_html,
        created_at=entry.created_at,
        processing_time_ms=entry.processing_time_ms,
    )


def _master_response(master) -> MasterResumeResponse:
    return MasterResumeResponse(
        id=master.id,
        user_id=master.user_id,
        resume_data=ResumeSnapshot.from_document(master.resume_data),
        parsed_from=master.parsed_from,
        parsed_at=master.parsed_at,
        updated_at=master.updated_at,
    )


class ChatEnhancementService:
    def __init__(self, db: Session, ai: ResumeAIService):
        self.db = db
        self.ai = ai

    def _require_session(self, user_id: str, chat_id: str) -> ChatSession:
        session = session_repo.get_active_for_user(self.db, chat_id, user_id)
        if not session:
            raise NotFound("Chat session not found")
        return session

    def _master_snapshot(self, user_id: str) -> ResumeSnapshot | None:
        master = master_resume_repo.get_by_user(self.db, user_id)
        return ResumeSnapshot.from_document(master.resume_data) if master else None

    @service_operation("Chat session created successfully")
    def create_session(self, user_id: str, template_id: str | None = None) -> SessionSummary:
        session = session_repo.create(self.db, session_repo.new_session(user_id, template_id))
        count = 0
        master = self._master_snapshot(user_id)
        if master is not None:
            history_repo.append(
                self.db,
                user_id,
                session.id,
                entry_type="seed",
                assistant_message=SEED_REPLY,
                original_resume=master.to_document(),
                template_id=template_id,
            )
            count = 1
        logger.info("Chat session created: chat=%s seeded=%s", session.id, master is not None)
        return _session_summary(session, count)

    @service_operation("Enhancement completed successfully")
    async def enhance(
        self,
        user_id: str,
        message: str,
        chat_id: str | None = None,
        resume_data: ResumeSnapshot | None = None,
        resume_html: str | None = None,
        template_id: str | None = None,
    ) -> EnhancementResult:
        _validate_message(message)
        started = time.perf_counter()
        session, entries, original, html = await run_blocking(
            self._load_turn, user_id, chat_id, template_id, resume_data, resume_html
        )

        enhanced: ResumeSnapshot | None = None
        enhanced_html: str | None = None
        if original is None:
            reply = NO_RESUME_REPLY
        elif html:
            enhanced_html, enhanced = await self.ai.enhance_html(html, original, message)
            reply = HTML_ENHANCED_REPLY
        else:
            context = build_conversation_context(entries, original, message)
            enhanced = await self.ai.enhance_resume(original, context)
            reply = JSON_ENHANCED_REPLY
        elapsed_ms = _elapsed_ms(started)

        session, history_id, timestamp = await run_blocking(
            self._record_turn,
            session,
            is_new=not chat_id,
            template_id=template_id,
            message=message,
            assistant_message=reply,
            original_resume=original.to_document() if original else None,
            enhanced_resume=enhanced.to_document() if enhanced else None,
            resume_html=html,
            enhanced_html=enhanced_html,
            processing_time_ms=elapsed_ms,
        )
        if not session.title_auto_set:
            title = await self._title_for(message, original is not None)
            session = await run_blocking(session_repo.set_title, self.db, session, title)

        return EnhancementResult(
            chat_id=session.id,
            history_id=history_id,
            title=session.title,
            user_message=message,
            assistant_message=reply,
            current_resume=enhanced or original,
            enhanced_html=enhanced_html,
            processing_time_ms=elapsed_ms,
            timestamp=timestamp,
        )

    def _load_turn(
        self,
        user_id: str,
        chat_id: str | None,
        template_id: str | None,
        resume_data: ResumeSnapshot | None,
        resume_html: str | None,
    ) -> tuple[ChatSession, list[HistoryEntry], ResumeSnapshot | None, str | None]:
        if chat_id:
            session = self._require_session(user_id, chat_id)
            entries = history_repo.query_by_chat(self.db, session.id, user_id)
        else:
            # Inserted only once the turn succeeds.
            session = session_repo.new_session(user_id, template_id)
            entries = []

        original = resume_data
        html = resume_html or None
        if original is None:
            original = resolve_current_resume(entries)
            if html is None:
                html = resolve_current_html(entries)
            if original is None:
                original = self._master_snapshot(user_id)
        return session, entries, original, html

    def _record_turn(
        self,
        session: ChatSession,
        *,
        is_new: bool,
        template_id: str | None,
        **fields: Any,
    ) -> tuple[ChatSession, str, datetime]:
        if is_new:
            session = session_repo.create(self.db, session)
        entry = history_repo.append(
            self.db,
            session.user_id,
            session.id,
            entry_type="enhance",
            template_id=template_id,
            **fields,
        )
        session = session_repo.touch(self.db, session, template_id)
        return session, entry.id, entry.created_at

    async def _title_for(self, message: str, use_ai: bool) -> str:
        if not use_ai:
            return fallback_title(message)
        try:
            return await self.ai.generate_title(message)
        except ProviderUnavailable as e:
            logger.warning("Title generation failed (%s), using message prefix", e.__class__.__name__)
            return fallback_title(message)

    @service_operation("Resume enhanced successfully")
    async def enhance_standalone(
        self,
        user_id: str,
        message: str,
        resume_data: ResumeSnapshot | None,
        template_id: str | None = None,
    ) -> StandaloneEnhancementResult:
        """One-shot enhancement outside any chat; logged with no chat id."""
        _validate_message(message)
        if resume_data is None:
            raise ValidationFailure("Resume data is required")
        started = time.perf_counter()
        enhanced = await self.ai.enhance_resume(resume_data, message)
        elapsed_ms = _elapsed_ms(started)
        entry = await run_blocking(
            history_repo.append,
            self.db,
            user_id,
            None,
            entry_type="enhance",
            message=message,
            assistant_message=JSON_ENHANCED_REPLY,
            original_resume=resume_data.to_document(),
            enhanced_resume=enhanced.to_document(),
            template_id=template_id,
            processing_time_ms=elapsed_ms,
        )
        logger.info("Standalone enhancement stored: history=%s ms=%d", entry.id, elapsed_ms)
        return StandaloneEnhancementResult(
            history_id=entry.id,
            user_message=message,
            original_resume=resume_data,
            enhanced_resume=enhanced,
            template_id=template_id,
            processing_time_ms=elapsed_ms,
            timestamp=entry.created_at,
        )

    @service_operation("Chat sessions retrieved successfully")
    def list_sessions(self, user_id: str, page: int = 1, page_size: int = 20) -> list[SessionSummary]:
        page, page_size = _clamp_page(page, page_size)
        sessions = session_repo.list_active_for_user(self.db, user_id, page, page_size)
        return [
            _session_summary(s, history_repo.count_by_chat(self.db, s.id, user_id))
            for s in sessions
        ]

    @service_operation("Chat session retrieved successfully")
    def get_session(self, user_id: str, chat_id: str) -> SessionDetail:
        session = self._require_session(user_id, chat_id)
        entries = history_repo.query_by_chat(self.db, chat_id, user_id)
        return SessionDetail(
            chat_id=session.id,
            title=session.title,
            created_at=session.created_at,
            updated_at=session.updated_at,
            is_active=session.is_active,
            template_id=session.template_id,
            resume_data=resolve_current_resume(entries),
            resume_html=resolve_current_html(entries),
            messages=_chat_messages(entries),
        )

    @service_operation("History retrieved successfully")
    def list_history(
        self,
        user_id: str,
        chat_id: str,
        page: int = 1,
        page_size: int = 20,
        sort_order: str = "desc",
        search: str | None = None,
        template_id: str | None = None,
    ) -> list[HistorySummary]:
        sort_order = (sort_order or "desc").lower()
        if sort_order not in ("asc", "desc"):
            raise ValidationFailure("sort_order must be 'asc' or 'desc'")
        page, page_size = _clamp_page(page, page_size)
        entries = history_repo.query_by_chat(
            self.db,
            chat_id,
            user_id,
            search=search,
            template_id=template_id,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )
        return [
            HistorySummary(
                id=e.id,
                entry_type=e.entry_type,
                user_message=e.user_message,
                template_id=e.template_id,
                created_at=e.created_at,
            )
            for e in entries
        ]

    @service_operation("History retrieved successfully")
    def list_user_history(self, user_id: str, page: int = 1, page_size: int = 10) -> list[HistoryDetail]:
        page, page_size = _clamp_page(page, page_size)
        return [_history_detail(e) for e in history_repo.query_standalone(self.db, user_id, page, page_size)]

    @service_operation("History retrieved successfully")
    def get_history_detail(self, user_id: str, history_id: str) -> HistoryDetail:
        entry = history_repo.get_for_user(self.db, history_id, user_id)
        if not entry:
            raise NotFound("History entry not found")
        return _history_detail(entry)

    @service_operation("Chat session deleted successfully")
    def delete_session(self, user_id: str, chat_id: str) -> bool:
        if not session_repo.tombstone(self.db, chat_id, user_id):
            raise NotFound("Chat session not found")
        logger.info("Chat session tombstoned: chat=%s", chat_id)
        return True

    @service_operation("Chat title updated successfully")
    def rename_session(self, user_id: str, chat_id: str, title: str) -> SessionSummary:
        title = (title or "").strip()
        if not title:
            raise ValidationFailure("Title is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationFailure(f"Title exceeds {MAX_TITLE_LENGTH} characters")
        session = self._require_session(user_id, chat_id)
        session = session_repo.set_title(self.db, session, title)
        return _session_summary(session, history_repo.count_by_chat(self.db, chat_id, user_id))

    @service_operation("Resume saved successfully")
    def save(
        self,
        user_id: str,
        chat_id: str,
        resume_data: ResumeSnapshot,
        template_id: str | None = None,
    ) -> bool:
        if resume_data is None:
            raise ValidationFailure("Resume data is required")
        session = self._require_session(user_id, chat_id)
        latest = history_repo.query_latest(self.db, chat_id, user_id=user_id)
        if (
            latest is not None
            and latest.entry_type == "save"
            and ResumeSnapshot.from_document(latest.enhanced_resume) == resume_data
        ):
            logger.info("Save skipped, resume unchanged: chat=%s", chat_id)
            return True
        history_repo.append(
            self.db,
            user_id,
            chat_id,
            entry_type="save",
            assistant_message=SAVE_REPLY,
            enhanced_resume=resume_data.to_document(),
            template_id=template_id,
        )
        session_repo.touch(self.db, session, template_id)
        return True

    @service_operation("Master resume extracted successfully")
    async def upload_master_resume(self, user_id: str, filename: str, content: bytes) -> MasterResumeResponse:
        if not content:
            raise ValidationFailure("Uploaded file is empty")
        try:
            parsed_from, text, image = await run_blocking(read_upload, filename, content)
        except UnsupportedDocument as e:
            raise ValidationFailure(str(e)) from e
        if image is None and not text:
            raise ValidationFailure("No readable text found in the document")
        snapshot = await self.ai.extract_resume(text=text, image=image)
        return await run_blocking(self._store_master, user_id, snapshot, parsed_from)

    def _store_master(self, user_id: str, snapshot: ResumeSnapshot, parsed_from: str) -> MasterResumeResponse:
        master = master_resume_repo.upsert(self.db, user_id, snapshot.to_document(), parsed_from)
        logger.info("Master resume stored: user=%s parsed_from=%s", user_id, parsed_from)
        return _master_response(master)

    @service_operation("Master resume retrieved successfully")
    def get_master_resume(self, user_id: str) -> MasterResumeResponse:
        master = master_resume_repo.get_by_user(self.db, user_id)
        if not master:
            raise NotFound("No master resume found")
        return _master_response(master)

    @service_operation("Usage retrieved successfully")
    def usage(self, user_id: str, benefits: dict[str, Any]) -> UsageSummary:
        return UsageSummary(
            daily_token_usage=quota_tracker.daily_token_usage(self.db, user_id),
            active_chat_sessions=quota_tracker.active_chat_session_count(self.db, user_id),
            benefits=benefits,
        )
