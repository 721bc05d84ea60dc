from resume_chat.models.chat_session import ChatSession
from resume_chat.models.history_entry import HistoryEntry
from resume_chat.models.master_resume import MasterResume

__all__ = [
    "ChatSession",
    "HistoryEntry",
    "MasterResume",
]
