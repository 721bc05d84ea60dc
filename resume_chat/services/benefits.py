from typing import Protocol

from resume_chat.config import settings

DAILY_TOKEN_LIMIT = "DAILY_TOKEN_LIMIT"
CHAT_SESSION_LIMIT = "CHAT_SESSION_LIMIT"


class BenefitsProvider(Protocol):
    def get_user_benefits(self, user_id: str) -> dict[str, int]: ...


class StaticBenefitsProvider:
    """Same limits for every user. Stands in until a billing service is wired in."""

    def __init__(self, daily_token_limit: int | None = None, chat_session_limit: int | None = None):
        self.daily_token_limit = (
            settings.default_daily_token_limit if daily_token_limit is None else daily_token_limit
        )
        self.chat_session_limit = (
            settings.default_chat_session_limit if chat_session_limit is None else chat_session_limit
        )

    def get_user_benefits(self, user_id: str) -> dict[str, int]:
        return {
            DAILY_TOKEN_LIMIT: self.daily_token_limit,
            CHAT_SESSION_LIMIT: self.chat_session_limit,
        }
