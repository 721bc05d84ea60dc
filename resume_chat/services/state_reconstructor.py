"""Derive the current state of a chat from its history log.

All functions here are pure: they read an oldest-first list of entries and
never touch the database. Scanning is O(len(entries)) per call.
"""

import json
from typing import Any, Sequence

from resume_chat.schemas.resume import ResumeSnapshot

CONTEXT_WINDOW = 10


def _latest(entries: Sequence[Any], field: str) -> Any:
    for entry in reversed(entries):
        value = getattr(entry, field, None)
        if value is not None:
            return value
    return None


def resolve_current_resume(entries: Sequence[Any]) -> ResumeSnapshot | None:
    """Newest enhanced snapshot, else newest original snapshot."""
    document = _latest(entries, "enhanced_resume")
    if document is None:
        document = _latest(entries, "original_resume")
    return ResumeSnapshot.from_document(document)


def resolve_current_html(entries: Sequence[Any]) -> str | None:
    html = _latest(entries, "enhanced_html")
    if html is None:
        html = _latest(entries, "resume_html")
    return html


def recent_entries(entries: Sequence[Any], window: int = CONTEXT_WINDOW) -> list[Any]:
    return list(entries[-window:]) if window > 0 else []


def build_conversation_context(
    entries: Sequence[Any],
    current_resume: ResumeSnapshot | None,
    message: str,
) -> str:
    parts: list[str] = []
    if current_resume is not None:
        parts.append("Current Resume Context:")
        parts.append(json.dumps(current_resume.to_document(), indent=2, ensure_ascii=False))
        parts.append("")
    parts.append("Conversation History:")
    for entry in recent_entries(entries):
        user_message = getattr(entry, "user_message", "") or ""
        assistant_message = getattr(entry, "assistant_message", "") or ""
        if user_message:
            parts.append(f"user: {user_message}")
        if assistant_message:
            parts.append(f"assistant: {assistant_message}")
    parts.append(f"user: {message}")
    return "\n".join(parts)
